"""JSON endpoints that expose the user mutation actions over HTTP."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import anyio
from fastapi import Body, FastAPI
from pydantic import BaseModel

from .actions import UserActions
from .cache import RouteCache
from .database import Database, resolve_database_path


class ActionResponse(BaseModel):
    """Result of a mutation: ``error`` is ``None`` on success."""

    error: Optional[str] = None


def create_app(
    *,
    database: Database | None = None,
    actions: UserActions | None = None,
    cache: RouteCache | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    """Create the JSON API application."""

    if database is None:
        db_path = resolve_database_path(os.getenv("USERBOARD_DB_PATH"))
        database = Database(db_path)
        database.initialize()
    elif initialize_database:
        database.initialize()

    if cache is None:
        cache = RouteCache()
    if actions is None:
        actions = UserActions(database, cache)

    app = FastAPI(
        title="Userboard API",
        description="Create, update and delete user records",
        version="1.0.0",
    )
    app.state.database = database
    app.state.actions = actions

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/users")
    async def list_users() -> Dict[str, List[Dict[str, Any]]]:
        result = await anyio.to_thread.run_sync(database.get_users)
        return {"users": [user.to_dict() for user in result["users"]]}

    # Mutation endpoints always answer 200; the only failure signal is the
    # error string in the body.
    @app.post("/users", response_model=ActionResponse)
    async def create_user(payload: Dict[str, Any] = Body(...)) -> ActionResponse:
        error = await actions.create_user_action(payload)
        return ActionResponse(error=error)

    @app.patch("/users/{user_id}", response_model=ActionResponse)
    async def update_user(
        user_id: str,
        payload: Dict[str, Any] = Body(...),
    ) -> ActionResponse:
        error = await actions.update_user_action({**payload, "id": user_id})
        return ActionResponse(error=error)

    @app.delete("/users/{user_id}", response_model=ActionResponse)
    async def delete_user(user_id: str) -> ActionResponse:
        error = await actions.delete_user_action(user_id)
        return ActionResponse(error=error)

    return app


__all__ = ["ActionResponse", "create_app"]

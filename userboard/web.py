"""Browser-based user list and create/edit forms."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import anyio
from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .actions import USERS_PATH, UserActions
from .cache import RouteCache
from .database import Database, resolve_database_path
from .forms import FormStatus, UserForm
from .models import User
from .notifications import Toast

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

_NEW_FORM_TARGET = "new"

logger = logging.getLogger("userboard.web")


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("USERBOARD_TRUSTED_PROXIES")
    if not raw:
        return "*"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


def _form_values(user: Optional[User]) -> Dict[str, object]:
    if user is None:
        return {"email": "", "name": "", "isPaid": False}
    return {"email": user.email, "name": user.name, "isPaid": user.is_paid}


def create_app(
    *,
    database: Optional[Database] = None,
    actions: Optional[UserActions] = None,
    cache: Optional[RouteCache] = None,
    session_secret: Optional[str] = None,
    session_secure: bool = False,
    initialize_database: bool = False,
) -> FastAPI:
    """Create the user management web application."""

    if database is None:
        db_path = resolve_database_path(os.getenv("USERBOARD_DB_PATH"))
        database = Database(db_path)
        database.initialize()
    elif initialize_database:
        database.initialize()

    if session_secret is None:
        session_secret = os.getenv("USERBOARD_SESSION_SECRET")
    if not session_secret:
        raise RuntimeError(
            "USERBOARD_SESSION_SECRET must be configured to use the web interface"
        )

    if cache is None:
        cache = RouteCache()
    if actions is None:
        actions = UserActions(database, cache, list_path=USERS_PATH)

    app = FastAPI(
        title="Userboard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie="userboard_session",
        https_only=session_secure,
        same_site="lax",
        max_age=60 * 60 * 24 * 7,
    )
    app.state.database = database
    app.state.actions = actions
    app.state.route_cache = cache

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    def _flash(request: Request, toast: Toast) -> None:
        messages = request.session.get("flash_messages")
        if not isinstance(messages, list):
            messages = []
        messages.append(toast.to_flash())
        request.session["flash_messages"] = messages

    def _consume_flash(request: Request) -> List[Dict[str, str]]:
        messages = request.session.pop("flash_messages", [])
        if isinstance(messages, list):
            return messages
        return []

    def _stash_form(
        request: Request,
        target: str,
        values: Dict[str, object],
        errors: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        request.session["form_state"] = {
            "target": target,
            "values": values,
            "errors": errors or {},
        }

    def _take_form(request: Request, target: str) -> Optional[Dict[str, object]]:
        state = request.session.pop("form_state", None)
        if not isinstance(state, dict) or state.get("target") != target:
            return None
        return state

    def _redirect(url) -> RedirectResponse:
        return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)

    def _form_url(request: Request, target: str):
        if target == _NEW_FORM_TARGET:
            return request.url_for("ui_new_user")
        return request.url_for("ui_edit_user", user_id=target)

    async def _load_user(user_id: str) -> Optional[User]:
        return await anyio.to_thread.run_sync(database.get_user, user_id)

    def _build_form(request: Request, user: Optional[User]) -> UserForm:
        target = user.id if user is not None else _NEW_FORM_TARGET

        def reopen(values: Optional[User]) -> None:
            _stash_form(request, target, _form_values(values))

        return UserForm(
            actions,
            user=user,
            open_modal=reopen,
            notify=lambda toast: _flash(request, toast),
        )

    def _render_form(request: Request, user: Optional[User], target: str) -> HTMLResponse:
        state = _take_form(request, target)
        values = _form_values(user)
        errors: Dict[str, List[str]] = {}
        if state is not None:
            stashed = state.get("values")
            if isinstance(stashed, dict):
                values.update(stashed)
            stashed_errors = state.get("errors")
            if isinstance(stashed_errors, dict):
                errors = stashed_errors

        form = UserForm(actions, user=user)
        if errors:
            form.set_errors(errors)

        if user is None:
            action_url = request.url_for("ui_create_user")
            delete_url = None
        else:
            action_url = request.url_for("ui_update_user", user_id=user.id)
            delete_url = request.url_for("ui_delete_user", user_id=user.id)

        return templates.TemplateResponse(
            request,
            "user_form.html",
            {
                "user": user,
                "form": form,
                "values": values,
                "messages": _consume_flash(request),
                "action_url": action_url,
                "delete_url": delete_url,
                "list_url": request.url_for("ui_users"),
            },
        )

    async def _submit(request: Request, user: Optional[User]) -> RedirectResponse:
        target = user.id if user is not None else _NEW_FORM_TARGET
        submitted = await request.form()
        payload = {key: value for key, value in submitted.items() if isinstance(value, str)}

        form = _build_form(request, user)
        succeeded = await form.handle_submit(payload)
        if succeeded:
            return _redirect(request.url_for("ui_users"))

        if form.status is FormStatus.IDLE and form.errors:
            # Rejected before any action ran; keep the raw input.
            values = {
                "email": payload.get("email", ""),
                "name": payload.get("name", ""),
                "isPaid": "isPaid" in payload,
            }
            _stash_form(request, target, values, form.errors)
        return _redirect(_form_url(request, target))

    @app.get("/", response_class=HTMLResponse)
    async def root(request: Request):
        return _redirect(request.url_for("ui_users"))

    @app.get("/users", response_class=HTMLResponse, name="ui_users")
    async def list_users(request: Request):
        users = await anyio.to_thread.run_sync(
            cache.get_or_load, USERS_PATH, database.list_users
        )
        rows = [
            {
                "user": user,
                "edit_url": request.url_for("ui_edit_user", user_id=user.id),
            }
            for user in users
        ]
        return templates.TemplateResponse(
            request,
            "users.html",
            {
                "rows": rows,
                "user_count": len(rows),
                "messages": _consume_flash(request),
                "new_url": request.url_for("ui_new_user"),
            },
        )

    @app.get("/users/new", response_class=HTMLResponse, name="ui_new_user")
    async def new_user(request: Request):
        return _render_form(request, None, _NEW_FORM_TARGET)

    @app.get("/users/{user_id}/edit", response_class=HTMLResponse, name="ui_edit_user")
    async def edit_user(request: Request, user_id: str):
        user = await _load_user(user_id)
        if user is None:
            _flash(request, Toast("Not found", "User not found.", "destructive"))
            return _redirect(request.url_for("ui_users"))
        return _render_form(request, user, user.id)

    @app.post("/users", name="ui_create_user")
    async def create_user(request: Request):
        return await _submit(request, None)

    @app.post("/users/{user_id}", name="ui_update_user")
    async def update_user(request: Request, user_id: str):
        user = await _load_user(user_id)
        if user is None:
            _flash(request, Toast("Failed to update", "User not found", "destructive"))
            return _redirect(request.url_for("ui_users"))
        return await _submit(request, user)

    @app.post("/users/{user_id}/delete", name="ui_delete_user")
    async def delete_user(request: Request, user_id: str):
        user = await _load_user(user_id)
        if user is None:
            _flash(request, Toast("Failed to delete", "User not found", "destructive"))
            return _redirect(request.url_for("ui_users"))

        form = _build_form(request, user)
        if await form.handle_delete():
            return _redirect(request.url_for("ui_users"))
        return _redirect(request.url_for("ui_edit_user", user_id=user.id))

    return app


__all__ = ["create_app"]

"""Application factory that serves both the JSON API and the HTML pages."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .actions import USERS_PATH, UserActions
from .api import create_app as create_api_app
from .cache import RouteCache
from .config import Settings, load_settings
from .database import Database
from .web import create_app as create_web_app


def create_application(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    config_path: Optional[Path] = None,
) -> FastAPI:
    """Create the combined ASGI application.

    The API and the web pages share one :class:`UserActions` so that a
    mutation made through either surface invalidates the cached list page.
    """

    if settings is None:
        settings = load_settings(config_path)

    if database is None:
        database = Database(settings.database_path)
    database.initialize()

    cache = RouteCache(revalidate=settings.list_revalidate)
    actions = UserActions(database, cache, list_path=USERS_PATH)

    api_app = create_api_app(database=database, actions=actions, cache=cache)
    web_app = create_web_app(
        database=database,
        actions=actions,
        cache=cache,
        session_secret=settings.session_secret,
        session_secure=settings.session_secure,
    )

    app = FastAPI(
        title="Userboard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.database = database
    app.state.settings = settings
    app.state.route_cache = cache
    app.state.api = api_app
    app.state.web = web_app

    app.mount("/api", api_app)
    app.mount("/", web_app)

    return app


__all__ = ["create_application"]

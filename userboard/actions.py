"""Server-side mutation entry points for user records.

Every action re-validates its input, delegates to the persistence layer and
marks the list route stale. Failures never escape as exceptions: they are
collapsed into a single human-readable string, which is the only error signal
callers receive.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Mapping, Optional, Protocol

import anyio

from .cache import NullInvalidator, ViewInvalidator
from .database import Database
from .schema import InsertUserParams, UpdateUserParams, UserIdParams, parse

logger = logging.getLogger("userboard.actions")

USERS_PATH = "/users"

FALLBACK_ERROR = "Error"

ErrorFormatter = Callable[[object], str]


def handle_errors(exc: object) -> str:
    """Collapse any failure into a plain message string."""

    if isinstance(exc, BaseException):
        return str(exc) or FALLBACK_ERROR
    if isinstance(exc, Mapping):
        error = exc.get("error")
    else:
        error = getattr(exc, "error", None)
    if error is not None and str(error):
        return str(error)
    return FALLBACK_ERROR


class ActionsProtocol(Protocol):
    """The mutation operations a form can invoke."""

    async def create_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        ...

    async def update_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        ...

    async def delete_user_action(self, user_id: str) -> Optional[str]:
        ...


class UserActions:
    """Validate, persist and invalidate for create/update/delete."""

    def __init__(
        self,
        database: Database,
        invalidator: ViewInvalidator | None = None,
        *,
        list_path: str = USERS_PATH,
        format_error: ErrorFormatter = handle_errors,
    ) -> None:
        self._database = database
        self._invalidator = invalidator or NullInvalidator()
        self._list_path = list_path
        self._format_error = format_error

    def _revalidate_users(self) -> None:
        self._invalidator.invalidate(self._list_path)

    async def create_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        try:
            payload = parse(InsertUserParams, values)
            user = await anyio.to_thread.run_sync(
                partial(self._database.create_user, **payload.to_values())
            )
            self._revalidate_users()
        except Exception as exc:
            message = self._format_error(exc)
            logger.warning("Failed to create user: %s", message)
            return message
        logger.info("User %s created", user.id)
        return None

    async def update_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        try:
            payload = parse(UpdateUserParams, values)
            await anyio.to_thread.run_sync(
                partial(self._database.update_user, payload.id, **payload.to_values())
            )
            self._revalidate_users()
        except Exception as exc:
            message = self._format_error(exc)
            logger.warning("Failed to update user: %s", message)
            return message
        logger.info("User %s updated", payload.id)
        return None

    async def delete_user_action(self, user_id: str) -> Optional[str]:
        try:
            payload = parse(UserIdParams, {"id": user_id})
            await anyio.to_thread.run_sync(self._database.delete_user, payload.id)
            self._revalidate_users()
        except Exception as exc:
            message = self._format_error(exc)
            logger.warning("Failed to delete user: %s", message)
            return message
        logger.info("User %s deleted", payload.id)
        return None


__all__ = [
    "ActionsProtocol",
    "ErrorFormatter",
    "FALLBACK_ERROR",
    "USERS_PATH",
    "UserActions",
    "handle_errors",
]

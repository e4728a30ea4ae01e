"""Create/update/delete form controller for a single user."""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Set

from .actions import FALLBACK_ERROR, ActionsProtocol, handle_errors
from .models import OptimisticAction, OptimisticEntry, User, placeholder_user
from .notifications import Notifier, Toast
from .schema import FieldErrors, InsertUserParams, safe_parse, validate_field

logger = logging.getLogger("userboard.forms")

OpenModal = Callable[[Optional[User]], None]
Callback = Callable[[], Any]


class FormStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


async def _maybe_await(callback: Optional[Callback]) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result


class UserForm:
    """Drive one create or edit form through validation, mutation and reconciliation.

    A form edits ``user`` when it has a confirmed id and creates a new record
    otherwise. Only one mutation may be in flight per instance: submit and
    delete requests made while another is pending are ignored.

    Collaborators are optional callables:

    ``open_modal(values)``
        Re-open the editing surface pre-filled with ``values`` after a failure.
    ``close_modal()``
        Close the editing surface as soon as a valid submission starts.
    ``add_optimistic(entry)``
        Overlay an :class:`OptimisticEntry` on the visible list.
    ``refresh()`` / ``post_success()``
        Called after a successful mutation; may return an awaitable.
    ``notify(toast)``
        Receives exactly one :class:`Toast` per completed attempt.
    """

    def __init__(
        self,
        actions: ActionsProtocol,
        *,
        user: Optional[User] = None,
        open_modal: Optional[OpenModal] = None,
        close_modal: Optional[Callback] = None,
        add_optimistic: Optional[Callable[[OptimisticEntry], None]] = None,
        post_success: Optional[Callback] = None,
        refresh: Optional[Callback] = None,
        notify: Optional[Notifier] = None,
    ) -> None:
        self._actions = actions
        self._user = user
        self._open_modal = open_modal
        self._close_modal = close_modal
        self._add_optimistic = add_optimistic
        self._post_success = post_success
        self._refresh = refresh
        self._notify = notify
        self._errors: Optional[FieldErrors] = None
        # Fields flagged while the user is typing; these block submission
        # until corrected. Errors found on submit are shown but do not.
        self._blocking: Set[str] = set()
        self._status = FormStatus.IDLE
        self._pending = False
        self._is_deleting = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def editing(self) -> bool:
        return bool(self._user is not None and self._user.id)

    @property
    def status(self) -> FormStatus:
        return self._status

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def is_deleting(self) -> bool:
        return self._is_deleting

    @property
    def errors(self) -> Optional[FieldErrors]:
        if self._errors is None:
            return None
        return {field: list(messages) for field, messages in self._errors.items()}

    @property
    def has_errors(self) -> bool:
        return self._errors is not None and any(self._errors.values())

    def first_error(self, field: str) -> Optional[str]:
        if not self._errors:
            return None
        messages = self._errors.get(field)
        return messages[0] if messages else None

    def set_errors(self, errors: Optional[FieldErrors]) -> None:
        self._errors = {field: list(messages) for field, messages in errors.items()} if errors else None
        self._blocking.clear()

    @property
    def submit_disabled(self) -> bool:
        return self._pending or bool(self._blocking)

    @property
    def delete_disabled(self) -> bool:
        return self._is_deleting or self._pending or self.has_errors

    @property
    def submit_label(self) -> str:
        if self.editing:
            return "Saving..." if self._pending and not self._is_deleting else "Save"
        return "Creating..." if self._pending else "Create"

    @property
    def delete_label(self) -> str:
        return "Deleting..." if self._is_deleting else "Delete"

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def handle_change(self, payload: Mapping[str, object], field: str) -> None:
        """Re-validate ``field`` after its value changed."""

        messages = validate_field(InsertUserParams, payload, field)
        errors = dict(self._errors or {})
        if messages:
            errors[field] = messages
            self._blocking.add(field)
        else:
            errors.pop(field, None)
            self._blocking.discard(field)
        self._errors = errors or None

    async def handle_submit(self, payload: Mapping[str, object]) -> bool:
        """Validate and submit ``payload``; return ``True`` when the mutation succeeded."""

        if self._pending:
            return False

        self.set_errors(None)
        parsed = safe_parse(InsertUserParams, payload)
        if not parsed.success or parsed.data is None:
            self._errors = parsed.errors or {}
            return False

        values = parsed.data.to_values()
        action: OptimisticAction
        user = self._user
        if user is not None and user.id:
            action = "update"
            attempted = user.merge(**values)
        else:
            action = "create"
            attempted = placeholder_user(
                email=str(values["email"]),
                name=str(values["name"]),
                is_paid=bool(values["is_paid"]),
            )

        self._pending = True
        self._status = FormStatus.SUBMITTING
        try:
            if self._close_modal is not None:
                self._close_modal()
            if self._add_optimistic is not None:
                self._add_optimistic(OptimisticEntry(action=action, data=attempted))
            if action == "update":
                error = await self._actions.update_user_action({**values, "id": attempted.id})
            else:
                error = await self._actions.create_user_action(values)
        except Exception as exc:
            logger.exception("Unexpected failure while trying to %s a user", action)
            error = handle_errors(exc)
        finally:
            self._pending = False

        return await self._on_result(action, error, attempted)

    async def handle_delete(self) -> bool:
        """Delete the edited user; return ``True`` when the deletion succeeded."""

        user = self._user
        if user is None or not user.id or self.delete_disabled:
            return False

        self._is_deleting = True
        self._pending = True
        self._status = FormStatus.SUBMITTING
        try:
            if self._close_modal is not None:
                self._close_modal()
            if self._add_optimistic is not None:
                self._add_optimistic(OptimisticEntry(action="delete", data=user))
            error = await self._actions.delete_user_action(user.id)
        except Exception as exc:
            logger.exception("Unexpected failure while trying to delete user %s", user.id)
            error = handle_errors(exc)
        finally:
            self._is_deleting = False
            self._pending = False

        return await self._on_result("delete", error, user)

    async def _on_result(self, action: OptimisticAction, error: Optional[str], values: User) -> bool:
        failed = bool(error)
        if failed:
            self._status = FormStatus.FAILURE
            if self._open_modal is not None:
                self._open_modal(values)
        else:
            self._status = FormStatus.SUCCESS
            # The mutation is already persisted; a failing follow-up must not
            # swallow the success toast.
            for callback in (self._refresh, self._post_success):
                try:
                    await _maybe_await(callback)
                except Exception:
                    logger.exception("Post-%s callback failed", action)

        if self._notify is not None:
            self._notify(
                Toast(
                    title=f"Failed to {action}" if failed else "Success",
                    description=(error or FALLBACK_ERROR) if failed else f"User {action}d!",
                    variant="destructive" if failed else "default",
                )
            )
        return not failed


__all__ = ["FormStatus", "UserForm"]

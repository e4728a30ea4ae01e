"""Interactive terminal view of the user list."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Awaitable, Callable, Dict, List, Optional

from .actions import ActionsProtocol
from .client import UserboardAPIError
from .forms import UserForm
from .models import User
from .notifications import Toast
from .optimistic import OptimisticUsers

logger = logging.getLogger("userboard.console")

UserLoader = Callable[[], Awaitable[List[User]]]
Output = Callable[[str], None]
Prompt = Callable[[str], str]


def format_toast(toast: Toast) -> str:
    marker = "!" if toast.variant == "destructive" else "*"
    return f"[{marker}] {toast.title}: {toast.description}"


class UserListView:
    """Own the visible user list and wire forms to it.

    The view is the only holder of the authoritative list; forms reach it
    through ``add_optimistic`` and the ``load`` refresh callback.
    """

    def __init__(
        self,
        actions: ActionsProtocol,
        loader: UserLoader,
        *,
        output: Output = print,
    ) -> None:
        self._actions = actions
        self._loader = loader
        self._output = output
        self._state = OptimisticUsers()
        self.reopened: Optional[User] = None

    @property
    def state(self) -> OptimisticUsers:
        return self._state

    @property
    def users(self) -> List[User]:
        return self._state.users

    async def load(self) -> bool:
        """Fetch the full collection and drop any optimistic overlay."""

        try:
            users = await self._loader()
        except (UserboardAPIError, sqlite3.Error) as exc:
            logger.warning("Failed to load users: %s", exc)
            self._output(f"Could not load users: {exc}")
            return False
        self._state.reconcile(users)
        return True

    def find(self, user_id: str) -> Optional[User]:
        for user in self._state.users:
            if user.id == user_id:
                return user
        return None

    def form_for(self, user: Optional[User] = None) -> UserForm:
        self.reopened = None
        return UserForm(
            self._actions,
            user=user,
            open_modal=self._reopen,
            add_optimistic=self._state.add_optimistic,
            refresh=self.load,
            notify=lambda toast: self._output(format_toast(toast)),
        )

    async def submit(self, form: UserForm, payload: Dict[str, object]) -> bool:
        succeeded = await form.handle_submit(payload)
        await self._settle()
        return succeeded

    async def delete(self, form: UserForm) -> bool:
        succeeded = await form.handle_delete()
        await self._settle()
        return succeeded

    async def _settle(self) -> None:
        # A failed mutation never triggers the form's refresh, so the
        # overlay is dropped here by re-reading the source of truth.
        if self._state.has_pending:
            await self.load()

    def _reopen(self, values: Optional[User]) -> None:
        self.reopened = values

    def render(self) -> str:
        users = self._state.users
        if not users:
            return "No users are currently registered."
        lines = [
            f"{len(users)} user(s):",
            f"{'ID':<34}  {'Name':<24}  {'Email':<32}  Paid",
            "-" * 98,
        ]
        for user in users:
            identifier = user.id or "<saving>"
            paid = "yes" if user.is_paid else "no"
            lines.append(f"{identifier:<34}  {user.name:<24}  {user.email:<32}  {paid}")
        return "\n".join(lines)


def _prompt_user_values(prompt: Prompt, defaults: Optional[User]) -> Dict[str, object]:
    def ask(label: str, current: str) -> str:
        suffix = f" [{current}]" if current else ""
        answer = prompt(f"{label}{suffix}: ").strip()
        return answer or current

    email = ask("Email", defaults.email if defaults else "")
    name = ask("Name", defaults.name if defaults else "")
    paid_default = "y" if defaults is not None and defaults.is_paid else "n"
    paid = ask("Paid? (y/n)", paid_default).lower()
    payload: Dict[str, object] = {"email": email, "name": name}
    if paid in {"y", "yes"}:
        payload["isPaid"] = "on"
    return payload


def _edit_loop(
    view: UserListView,
    form: UserForm,
    prompt: Prompt,
    output: Output,
    defaults: Optional[User],
) -> None:
    while True:
        payload = _prompt_user_values(prompt, defaults)
        asyncio.run(view.submit(form, payload))
        if form.errors:
            for field, messages in form.errors.items():
                if messages:
                    output(f"  {field}: {messages[0]}")
            retry = prompt("Fix and retry? (y/n): ").strip().lower()
            if retry not in {"y", "yes"}:
                return
            continue
        if view.reopened is not None:
            retry = prompt("Retry with the same values? (y/n): ").strip().lower()
            if retry not in {"y", "yes"}:
                return
            defaults = view.reopened
            form = view.form_for(form.user)
            continue
        return


def run_console(
    view: UserListView,
    *,
    prompt: Prompt = input,
    output: Output = print,
) -> None:
    """Menu-driven loop for listing, creating, editing and deleting users."""

    output("Userboard Administration Console")
    output("Press Ctrl+C at any time to exit.\n")

    asyncio.run(view.load())

    try:
        while True:
            output("Select an option:")
            output("  1) List users")
            output("  2) Create a user")
            output("  3) Edit a user")
            output("  4) Delete a user")
            output("  5) Exit")

            choice = prompt("Enter choice [1-5]: ").strip()

            if choice == "1":
                asyncio.run(view.load())
                output(view.render())
            elif choice == "2":
                _edit_loop(view, view.form_for(), prompt, output, None)
            elif choice in {"3", "4"}:
                user_id = prompt("User ID: ").strip()
                user = view.find(user_id)
                if user is None:
                    output("No user with that ID.")
                elif choice == "3":
                    _edit_loop(view, view.form_for(user), prompt, output, user)
                else:
                    confirm = prompt(f"Delete {user.email}? (y/n): ").strip().lower()
                    if confirm in {"y", "yes"}:
                        asyncio.run(view.delete(view.form_for(user)))
            elif choice == "5":
                output("Goodbye!")
                return
            else:
                output("Invalid selection. Please choose a number from the menu.\n")

            output("")
    except (KeyboardInterrupt, EOFError):
        output("\nExiting administration console.")


__all__ = ["UserListView", "format_toast", "run_console"]

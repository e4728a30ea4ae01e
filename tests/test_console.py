from __future__ import annotations

import asyncio
import sqlite3
from typing import Iterable, List

import anyio

from userboard.actions import UserActions
from userboard.client import UserboardAPIError
from userboard.console import UserListView, format_toast, run_console
from userboard.database import Database
from userboard.notifications import Toast


def _view(database: Database, output: List[str]) -> UserListView:
    async def load():
        return await anyio.to_thread.run_sync(database.list_users)

    return UserListView(UserActions(database), load, output=output.append)


def _scripted(answers: Iterable[str]):
    remaining = list(answers)

    def prompt(message: str) -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return prompt


def test_format_toast_marks_failures() -> None:
    assert format_toast(Toast("Success", "User created!")) == "[*] Success: User created!"
    assert format_toast(Toast("Failed to delete", "Error", "destructive")) == "[!] Failed to delete: Error"


def test_render_lists_users(database: Database) -> None:
    output: List[str] = []
    view = _view(database, output)
    assert view.render() == "No users are currently registered."

    database.create_user(email="a@x.com", name="Alice", is_paid=True)
    asyncio.run(view.load())

    rendered = view.render()
    assert "1 user(s):" in rendered
    assert "Alice" in rendered
    assert "yes" in rendered


def test_successful_submit_reconciles_with_persistence(database: Database) -> None:
    output: List[str] = []
    view = _view(database, output)
    asyncio.run(view.load())

    form = view.form_for()
    ok = asyncio.run(view.submit(form, {"email": "a@x.com", "name": "Alice"}))

    assert ok is True
    assert not view.state.has_pending
    assert [user.email for user in view.users] == ["a@x.com"]
    assert view.users[0].id
    assert output == ["[*] Success: User created!"]


def test_failed_submit_drops_overlay_and_reopens(database: Database) -> None:
    database.create_user(email="taken@x.com", name="Taken")
    user = database.create_user(email="a@x.com", name="Alice")
    output: List[str] = []
    view = _view(database, output)
    asyncio.run(view.load())

    form = view.form_for(view.find(user.id))
    ok = asyncio.run(view.submit(form, {"email": "taken@x.com", "name": "Renamed"}))

    assert ok is False
    assert not view.state.has_pending
    assert view.find(user.id) == user
    assert view.reopened is not None
    assert view.reopened.name == "Renamed"
    assert output == ["[!] Failed to update: A user with that email already exists"]


def test_delete_through_view(database: Database) -> None:
    user = database.create_user(email="a@x.com", name="Alice")
    output: List[str] = []
    view = _view(database, output)
    asyncio.run(view.load())

    assert asyncio.run(view.delete(view.form_for(view.find(user.id))))

    assert view.users == []
    assert output == ["[*] Success: User deleted!"]


def test_load_failure_is_reported(database: Database) -> None:
    output: List[str] = []

    async def broken():
        raise UserboardAPIError("service unavailable")

    view = UserListView(UserActions(database), broken, output=output.append)

    assert asyncio.run(view.load()) is False
    assert output == ["Could not load users: service unavailable"]


def test_run_console_creates_lists_and_exits(database: Database) -> None:
    output: List[str] = []
    view = _view(database, output)
    prompt = _scripted(["2", "a@x.com", "Alice", "y", "1", "5"])

    run_console(view, prompt=prompt, output=output.append)

    users = database.list_users()
    assert len(users) == 1
    assert users[0].is_paid is True
    assert "[*] Success: User created!" in output
    assert any("Alice" in line for line in output)
    assert output[-1] == "Goodbye!"


def test_run_console_reports_validation_errors(database: Database) -> None:
    output: List[str] = []
    view = _view(database, output)
    prompt = _scripted(["2", "", "Alice", "n", "n", "5"])

    run_console(view, prompt=prompt, output=output.append)

    assert "  email: Email is required" in output
    assert database.list_users() == []


def test_run_console_deletes_after_confirmation(database: Database) -> None:
    user = database.create_user(email="a@x.com", name="Alice")
    output: List[str] = []
    view = _view(database, output)
    prompt = _scripted(["4", user.id, "y", "4", "missing"])

    run_console(view, prompt=prompt, output=output.append)

    assert database.list_users() == []
    assert "No user with that ID." in output
    assert output[-1] == "\nExiting administration console."


def test_local_storage_failure_is_reported(database: Database) -> None:
    output: List[str] = []

    async def locked():
        raise sqlite3.OperationalError("database is locked")

    view = UserListView(UserActions(database), locked, output=output.append)

    assert asyncio.run(view.load()) is False
    assert output == ["Could not load users: database is locked"]

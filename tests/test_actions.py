from __future__ import annotations

import asyncio
import logging
from typing import List

from userboard.actions import FALLBACK_ERROR, UserActions, handle_errors
from userboard.cache import RouteCache
from userboard.database import Database


class RecordingInvalidator:
    def __init__(self) -> None:
        self.paths: List[str] = []

    def invalidate(self, path: str) -> None:
        self.paths.append(path)


class FailingDatabase(Database):
    def __init__(self, path, error: Exception) -> None:
        super().__init__(path)
        self.error = error
        self.calls = 0

    def create_user(self, **fields):
        self.calls += 1
        raise self.error

    def update_user(self, user_id, **fields):
        self.calls += 1
        raise self.error

    def delete_user(self, user_id):
        self.calls += 1
        raise self.error


class ErrorCarrier:
    def __init__(self, error: str) -> None:
        self.error = error


def test_handle_errors_normalises_every_kind_of_failure() -> None:
    assert handle_errors(ValueError("Email taken")) == "Email taken"
    assert handle_errors(RuntimeError()) == FALLBACK_ERROR
    assert handle_errors({"error": "Not allowed"}) == "Not allowed"
    assert handle_errors(ErrorCarrier("Quota exceeded")) == "Quota exceeded"
    assert handle_errors({"message": "ignored"}) == "Error"
    assert handle_errors(42) == "Error"
    assert handle_errors(None) == "Error"


def test_create_action_persists_and_invalidates(database: Database) -> None:
    invalidator = RecordingInvalidator()
    actions = UserActions(database, invalidator)

    error = asyncio.run(
        actions.create_user_action({"email": "a@x.com", "name": "A", "isPaid": "on"})
    )

    assert error is None
    users = database.list_users()
    assert len(users) == 1
    assert users[0].is_paid is True
    assert invalidator.paths == ["/users"]


def test_create_action_revalidates_input_before_persisting(tmp_path) -> None:
    db = FailingDatabase(tmp_path / "db.sqlite3", RuntimeError("should not be called"))
    db.initialize()
    invalidator = RecordingInvalidator()
    actions = UserActions(db, invalidator)

    error = asyncio.run(actions.create_user_action({"email": "a@x.com", "name": ""}))

    assert error == "Name is required"
    assert db.calls == 0
    assert invalidator.paths == []


def test_update_action_applies_changes(database: Database) -> None:
    user = database.create_user(email="a@x.com", name="A")
    cache = RouteCache(revalidate=60)
    cache.get_or_load("/users", database.list_users)
    actions = UserActions(database, cache)

    error = asyncio.run(actions.update_user_action({"id": user.id, "name": "B", "isPaid": True}))

    assert error is None
    refreshed = database.get_user(user.id)
    assert refreshed is not None
    assert refreshed.name == "B"
    assert refreshed.is_paid is True
    assert not cache.is_cached("/users")


def test_update_action_returns_persistence_error(database: Database) -> None:
    actions = UserActions(database, RecordingInvalidator())

    error = asyncio.run(actions.update_user_action({"id": "missing", "name": "B"}))

    assert error == "User not found"


def test_delete_action_removes_user(database: Database) -> None:
    user = database.create_user(email="a@x.com", name="A")
    invalidator = RecordingInvalidator()
    actions = UserActions(database, invalidator)

    assert asyncio.run(actions.delete_user_action(user.id)) is None
    assert database.list_users() == []
    assert invalidator.paths == ["/users"]


def test_delete_action_validates_id_shape(database: Database) -> None:
    actions = UserActions(database)

    assert asyncio.run(actions.delete_user_action("")) == "Id is required"


def test_unexpected_failures_collapse_to_fallback_and_are_logged(tmp_path, caplog) -> None:
    db = FailingDatabase(tmp_path / "db.sqlite3", RuntimeError())
    db.initialize()
    invalidator = RecordingInvalidator()
    actions = UserActions(db, invalidator)

    with caplog.at_level(logging.WARNING, logger="userboard.actions"):
        error = asyncio.run(actions.delete_user_action("abc"))

    assert error == "Error"
    assert invalidator.paths == []
    assert "Failed to delete user" in caplog.text


def test_error_formatter_can_be_replaced(tmp_path) -> None:
    db = FailingDatabase(tmp_path / "db.sqlite3", ValueError("Disk full"))
    db.initialize()
    actions = UserActions(db, format_error=lambda exc: f"{type(exc).__name__}: {exc}")

    error = asyncio.run(actions.create_user_action({"email": "a@x.com", "name": "A"}))

    assert error == "ValueError: Disk full"


def test_handle_errors_ignores_empty_error_values() -> None:
    assert handle_errors({"error": None}) == FALLBACK_ERROR
    assert handle_errors({"error": ""}) == FALLBACK_ERROR
    assert handle_errors(ErrorCarrier("")) == FALLBACK_ERROR

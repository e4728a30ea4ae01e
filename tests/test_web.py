from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from userboard.cache import RouteCache
from userboard.database import Database
from userboard.web import create_app


@pytest.fixture
def client(database: Database):
    app = create_app(database=database, session_secret="tests-secret")
    with TestClient(app) as test_client:
        yield test_client


def test_missing_session_secret_is_rejected(database: Database, monkeypatch) -> None:
    monkeypatch.delenv("USERBOARD_SESSION_SECRET", raising=False)

    with pytest.raises(RuntimeError):
        create_app(database=database)


def test_root_redirects_to_user_list(client: TestClient) -> None:
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].endswith("/users")


def test_empty_list_shows_call_to_action(client: TestClient) -> None:
    response = client.get("/users")

    assert response.status_code == 200
    assert "No users" in response.text
    assert "New User" in response.text


def test_create_user_redirects_with_success_toast(client: TestClient, database: Database) -> None:
    response = client.post(
        "/users",
        data={"email": "alice@example.com", "name": "Alice", "isPaid": "on"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"].endswith("/users")

    page = client.get("/users")
    assert "User created!" in page.text
    assert "alice@example.com" in page.text
    assert "Paid" in page.text

    users = database.list_users()
    assert len(users) == 1
    assert users[0].is_paid is True

    # Flash messages are shown once.
    assert "User created!" not in client.get("/users").text


def test_invalid_create_reopens_form_with_field_errors(client: TestClient, database: Database) -> None:
    response = client.post("/users", data={"email": "", "name": "Bob"}, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].endswith("/users/new")

    page = client.get("/users/new")
    assert "Email is required" in page.text
    assert 'value="Bob"' in page.text
    assert "Create" in page.text
    assert database.list_users() == []


def test_edit_form_is_prefilled(client: TestClient, database: Database) -> None:
    user = database.create_user(email="a@example.com", name="Alice", is_paid=True)

    page = client.get(f"/users/{user.id}/edit")

    assert page.status_code == 200
    assert "Edit User" in page.text
    assert 'value="a@example.com"' in page.text
    assert "checked" in page.text
    assert "Save" in page.text
    assert "Delete" in page.text


def test_update_failure_reopens_prefilled_form(client: TestClient, database: Database) -> None:
    database.create_user(email="taken@example.com", name="Taken")
    user = database.create_user(email="a@example.com", name="Alice")

    response = client.post(
        f"/users/{user.id}",
        data={"email": "taken@example.com", "name": "Renamed"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"].endswith(f"/users/{user.id}/edit")

    page = client.get(f"/users/{user.id}/edit")
    assert "Failed to update" in page.text
    assert "A user with that email already exists" in page.text
    assert 'value="taken@example.com"' in page.text
    assert 'value="Renamed"' in page.text

    stored = database.get_user(user.id)
    assert stored is not None
    assert stored.name == "Alice"


def test_update_success(client: TestClient, database: Database) -> None:
    user = database.create_user(email="a@example.com", name="Alice", is_paid=True)

    page = client.post(f"/users/{user.id}", data={"email": "a@example.com", "name": "Alicia"})

    assert page.status_code == 200
    assert "User updated!" in page.text
    stored = database.get_user(user.id)
    assert stored is not None
    assert stored.name == "Alicia"
    assert stored.is_paid is False


def test_delete_user(client: TestClient, database: Database) -> None:
    user = database.create_user(email="a@example.com", name="Alice")

    page = client.post(f"/users/{user.id}/delete")

    assert page.status_code == 200
    assert "User deleted!" in page.text
    assert database.list_users() == []


def test_unknown_user_redirects_with_error(client: TestClient) -> None:
    page = client.get("/users/missing/edit")

    assert page.status_code == 200
    assert "User not found." in page.text

    page = client.post("/users/missing/delete")
    assert "Failed to delete" in page.text


def test_list_reflects_mutations_despite_caching(database: Database) -> None:
    cache = RouteCache(revalidate=3600)
    app = create_app(database=database, cache=cache, session_secret="tests-secret")

    with TestClient(app) as client:
        assert "No users" in client.get("/users").text
        assert cache.is_cached("/users")

        page = client.post("/users", data={"email": "a@example.com", "name": "Alice"})

        assert "a@example.com" in page.text
        assert "No users" not in page.text

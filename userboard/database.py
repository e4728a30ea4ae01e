"""SQLite-backed persistence for user records."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .models import User

logger = logging.getLogger("userboard.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "userboard.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _generate_user_id() -> str:
    return uuid.uuid4().hex


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class Database:
    """Simple wrapper around SQLite for persisting users."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    is_paid INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
                """
            )

            columns = {
                row["name"]
                for row in conn.execute("PRAGMA table_info(users)").fetchall()
            }
            if "is_paid" not in columns:
                conn.execute("ALTER TABLE users ADD COLUMN is_paid INTEGER NOT NULL DEFAULT 0")

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, *, email: str, name: str, is_paid: bool = False) -> User:
        """Insert a new user and return it with its generated identifier."""

        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("Name must not be empty")
        normalized_email = _normalize_email(email)
        if not normalized_email:
            raise ValueError("Email must not be empty")

        user = User(
            id=_generate_user_id(),
            email=normalized_email,
            name=normalized_name,
            is_paid=bool(is_paid),
            created_at=_current_timestamp(),
        )

        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (id, email, name, is_paid, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.email,
                        user.name,
                        int(user.is_paid),
                        _serialize_datetime(user.created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("A user with that email already exists") from exc

        logger.info("Created user %s", user.id)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, rowid").fetchall()
        return [self._row_to_user(row) for row in rows]

    def get_users(self) -> Dict[str, List[User]]:
        """Return the full, unpaginated collection wrapped as ``{"users": [...]}``."""

        return {"users": self.list_users()}

    def update_user(self, user_id: str, **fields: object) -> User:
        """Apply the supplied field changes to an existing user."""

        allowed = {
            "email": "email",
            "name": "name",
            "is_paid": "is_paid",
        }

        updates: List[str] = []
        values: List[object] = []
        for key, column in allowed.items():
            if key not in fields:
                continue
            value = fields[key]
            if value is None:
                continue
            if column == "email":
                value = _normalize_email(str(value))
                if not value:
                    raise ValueError("Email must not be empty")
            if column == "name":
                value = str(value).strip()
                if not value:
                    raise ValueError("Name must not be empty")
            if column == "is_paid":
                value = int(bool(value))
            updates.append(f"{column} = ?")
            values.append(value)

        if not updates:
            existing = self.get_user(user_id)
            if existing is None:
                raise ValueError("User not found")
            return existing

        values.append(user_id)
        query = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"

        with self._connect() as conn:
            try:
                cursor = conn.execute(query, values)
            except sqlite3.IntegrityError as exc:
                raise ValueError("A user with that email already exists") from exc
            if cursor.rowcount == 0:
                raise ValueError("User not found")

        refreshed = self.get_user(user_id)
        if refreshed is None:
            raise ValueError("User not found")
        logger.info("Updated user %s", user_id)
        return refreshed

    def delete_user(self, user_id: str) -> User:
        """Permanently remove a user and return the deleted record."""

        existing = self.get_user(user_id)
        if existing is None:
            raise ValueError("User not found")

        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise ValueError("User not found")

        logger.info("Deleted user %s", user_id)
        return existing

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=str(row["id"]),
            email=str(row["email"]),
            name=str(row["name"]),
            is_paid=bool(row["is_paid"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database", "resolve_database_path"]

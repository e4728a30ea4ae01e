"""Domain models for the user directory."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

OptimisticAction = Literal["create", "update", "delete"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class User:
    """Represents a user record stored in the userboard database."""

    id: str
    email: str
    name: str
    is_paid: bool = False
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def confirmed(self) -> bool:
        return bool(self.id)

    def merge(self, **values: object) -> "User":
        """Return a copy with the supplied fields overridden.

        ``None`` values are skipped so partial update payloads leave the
        existing field untouched.
        """

        changes = {key: value for key, value in values.items() if value is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "isPaid": self.is_paid,
            "createdAt": self.created_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "User":
        """Build a :class:`User` from its JSON representation."""

        raw_created = data.get("createdAt") or data.get("created_at")
        created_at = datetime.fromisoformat(str(raw_created)) if raw_created else _utcnow()
        raw_paid = data.get("isPaid", data.get("is_paid", False))
        return User(
            id=str(data.get("id") or ""),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or ""),
            is_paid=bool(raw_paid),
            created_at=created_at,
        )


@dataclass(frozen=True)
class OptimisticEntry:
    """A pending change overlaid on the user list until the server confirms it."""

    action: OptimisticAction
    data: User


def placeholder_user(
    *,
    email: str,
    name: str,
    is_paid: bool = False,
    user_id: Optional[str] = None,
) -> User:
    """Build a user that has not been confirmed by persistence yet."""

    return User(id=user_id or "", email=email, name=name, is_paid=is_paid)


__all__ = ["OptimisticAction", "OptimisticEntry", "User", "placeholder_user"]

"""Optimistic overlay of pending user mutations on the last known list."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .models import OptimisticEntry, User


def apply_optimistic(state: Sequence[User], entry: OptimisticEntry) -> List[User]:
    """Return the list as it should look once ``entry`` is confirmed.

    The input sequence is never modified.
    """

    data = entry.data
    if entry.action == "create":
        return [*state, data]
    if entry.action == "update":
        return [data if item.id == data.id else item for item in state]
    if entry.action == "delete":
        return [item for item in state if item.id != data.id]
    return list(state)


class OptimisticUsers:
    """Own the authoritative user list and the pending overlay applied to it.

    Two pending edits for the same id are applied in the order they were
    queued and nothing detects the conflict; the last one to settle wins.
    """

    def __init__(self, users: Sequence[User] = ()) -> None:
        self._authoritative: Tuple[User, ...] = tuple(users)
        self._pending: List[OptimisticEntry] = []

    @property
    def authoritative(self) -> Tuple[User, ...]:
        return self._authoritative

    @property
    def pending(self) -> Tuple[OptimisticEntry, ...]:
        return tuple(self._pending)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    @property
    def users(self) -> List[User]:
        state: List[User] = list(self._authoritative)
        for entry in self._pending:
            state = apply_optimistic(state, entry)
        return state

    def add_optimistic(self, entry: OptimisticEntry) -> None:
        self._pending.append(entry)

    def reconcile(self, users: Sequence[User]) -> None:
        """Adopt a freshly fetched list and drop the optimistic overlay."""

        self._authoritative = tuple(users)
        self._pending.clear()


__all__ = ["OptimisticUsers", "apply_optimistic"]

"""Route output caching and invalidation for rendered list views."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generic, Protocol, TypeVar

T = TypeVar("T")


class ViewInvalidator(Protocol):
    """Anything that can mark a route's cached output as stale."""

    def invalidate(self, path: str) -> None:
        ...


class NullInvalidator:
    """Invalidator used when nothing is cached."""

    def invalidate(self, path: str) -> None:
        return None


@dataclass
class _CacheRecord(Generic[T]):
    value: T
    expires_at: datetime


class RouteCache:
    """Cache fetched route data for ``revalidate`` seconds.

    A ``revalidate`` of zero disables caching so every read goes back to the
    source of truth.
    """

    def __init__(self, *, revalidate: float = 0) -> None:
        if revalidate < 0:
            raise ValueError("revalidate must not be negative")
        self._ttl = timedelta(seconds=revalidate)
        self._entries: Dict[str, _CacheRecord] = {}
        # Bumped on every invalidation; a load that started under an older
        # generation must not be stored.
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    @property
    def revalidate(self) -> float:
        return self._ttl.total_seconds()

    def get_or_load(self, path: str, loader: Callable[[], T]) -> T:
        """Return cached data for ``path`` or call ``loader`` and cache it."""

        if not self._ttl:
            return loader()

        now = self._now()
        with self._lock:
            record = self._entries.get(path)
            if record is not None and record.expires_at > now:
                return record.value
            generation = (self._epoch, self._generations.get(path, 0))

        value = loader()
        with self._lock:
            if (self._epoch, self._generations.get(path, 0)) == generation:
                self._entries[path] = _CacheRecord(value=value, expires_at=now + self._ttl)
        return value

    def is_cached(self, path: str) -> bool:
        now = self._now()
        with self._lock:
            record = self._entries.get(path)
            return record is not None and record.expires_at > now

    def invalidate(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)
            self._generations[path] = self._generations.get(path, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["NullInvalidator", "RouteCache", "ViewInvalidator"]

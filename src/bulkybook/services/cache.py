"""In-memory distributed cache."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: datetime | None
    sliding: timedelta | None


@dataclass
class MemoryCache:
    """Process-local key/value cache with absolute and sliding expiration."""

    default_ttl: timedelta | None = None
    clock: Callable[[], datetime] = utcnow
    _entries: dict[str, _Entry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self.clock()
            if entry.expires_at is not None and now >= entry.expires_at:
                del self._entries[key]
                return None
            if entry.sliding is not None:
                entry.expires_at = now + entry.sliding
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: timedelta | None = None,
        sliding: timedelta | None = None,
    ) -> None:
        """Store ``value``; ``sliding`` renews expiry on every read."""
        ttl = ttl if ttl is not None else self.default_ttl
        window = sliding or ttl
        expires_at = self.clock() + window if window is not None else None
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at, sliding=sliding)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def get_or_set(self, key: str, factory: Callable[[], Any], *, ttl: timedelta | None = None) -> Any:
        value = self.get(key)
        if value is None:
            value = factory()
            self.set(key, value, ttl=ttl)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["MemoryCache"]

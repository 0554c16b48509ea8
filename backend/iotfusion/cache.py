"""Short-lived in-memory cache for the raw upstream record set."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Holds one value for ``ttl`` seconds after it was stored."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = ttl
        self._clock = clock
        self._value: T | None = None
        self._stored_at: float | None = None
        self._stored_wall: datetime | None = None

    def set(self, value: T) -> None:
        self._value = value
        self._stored_at = self._clock()
        self._stored_wall = datetime.now(timezone.utc)

    def is_valid(self) -> bool:
        if self._value is None or self._stored_at is None:
            return False
        return (self._clock() - self._stored_at) < self.ttl

    def get(self) -> T | None:
        return self._value if self.is_valid() else None

    def clear(self) -> None:
        self._value = None
        self._stored_at = None
        self._stored_wall = None

    def stats(self) -> dict[str, Any]:
        value = self._value
        return {
            "hasData": value is not None,
            "timestamp": self._stored_wall.isoformat() if self._stored_wall else None,
            "isValid": self.is_valid(),
            "recordCount": len(value) if isinstance(value, (list, tuple)) else 0,
        }

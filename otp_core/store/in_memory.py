"""
In-Memory Store
===============
Process-local key/value store for development and testing.
"""

import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .base import KeyValueStore
from .models import CounterState


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store with lazy expiry.

    All operations run under one lock, so they are atomic across threads
    and coroutines in a single process. Use RedisStore when the service
    runs more than one instance.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Args:
            clock: Returns the current time in epoch seconds
        """
        self.clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[str, float]] = {}

    def _live(self, key: str, now: float) -> Optional[Tuple[str, float]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if now >= entry[1]:
            del self._data[key]
            return None
        return entry

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (value, self.clock() + ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key, self.clock())
            return entry[0] if entry else None

    async def get_and_delete(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key, self.clock())
            if entry is None:
                return None
            del self._data[key]
            return entry[0]

    async def increment_with_ttl(
        self,
        key: str,
        ttl_seconds: int,
        limit: Optional[int] = None,
    ) -> CounterState:
        with self._lock:
            now = self.clock()
            entry = self._live(key, now)

            if entry is None:
                count, expires_at = 0, now + ttl_seconds
            else:
                count, expires_at = int(entry[0]), entry[1]

            remaining = max(0, math.ceil(expires_at - now))

            if limit is not None and count >= limit:
                return CounterState(incremented=False, count=count, ttl_seconds=remaining)

            count += 1
            self._data[key] = (str(count), expires_at)
            return CounterState(incremented=True, count=count, ttl_seconds=remaining)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._data.clear()

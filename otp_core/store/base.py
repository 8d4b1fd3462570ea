"""
Key/Value Store Contract
========================
Atomic primitives the issuer, redeemer and rate guard rely on.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import CounterState


class KeyValueStore(ABC):
    """
    Abstract key/value store with expiring entries.

    Every state-changing method must be a single atomic operation on the
    backing store. Backend failures are raised as StoreUnavailable.
    """

    name: str = "base"

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires after ttl_seconds."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent or expired."""
        pass

    @abstractmethod
    async def get_and_delete(self, key: str) -> Optional[str]:
        """
        Atomically return and remove the value for key.

        For concurrent callers on the same key, at most one sees a value.
        """
        pass

    @abstractmethod
    async def increment_with_ttl(
        self,
        key: str,
        ttl_seconds: int,
        limit: Optional[int] = None,
    ) -> CounterState:
        """
        Atomically increment a counter.

        An absent counter starts at 1 and expires after ttl_seconds. The TTL
        is not extended by later increments. When limit is given and the
        current count is already at or above it, nothing is changed and the
        result has incremented=False.
        """
        pass

    async def ping(self) -> bool:
        """Check that the store is reachable."""
        return True

    async def close(self) -> None:
        """Release connections held by the store."""
        pass

"""
Rate Guard
==========
Fixed-window issuance and redemption throttling on top of the store's atomic counter.
"""

import structlog

from otp_core.store import KeyValueStore

from .models import RateDecision, RateGuardResult

logger = structlog.get_logger(__name__)


class RateGuard:
    """
    Bounds attempts per key within a time window.

    Denied attempts do not touch the counter. Store failures propagate as
    StoreUnavailable, so callers fail closed.
    """

    def __init__(self, store: KeyValueStore, prefix: str = "otp"):
        self.store = store
        self.prefix = prefix

    def get_key(self, scope: str, identifier: str) -> str:
        """Generate a rate counter key."""
        return f"{self.prefix}:rate:{scope}:{identifier}"

    async def check_and_increment(
        self,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateGuardResult:
        """
        Count an attempt against key unless it is already at the limit.

        Args:
            key: Counter key
            limit: Attempts allowed per window
            window_seconds: Window size in seconds

        Returns:
            RateGuardResult with the decision
        """
        state = await self.store.increment_with_ttl(key, window_seconds, limit=limit)

        if not state.incremented:
            logger.warning("Rate limit exceeded", key=key, count=state.count, limit=limit)
            return RateGuardResult(
                decision=RateDecision.DENIED,
                key=key,
                count=state.count,
                limit=limit,
                retry_after=state.ttl_seconds or window_seconds,
            )

        return RateGuardResult(
            decision=RateDecision.ALLOWED,
            key=key,
            count=state.count,
            limit=limit,
        )

    async def check_identity(self, identity: str, limit: int, window_seconds: int) -> RateGuardResult:
        """Throttle by the identity a code is requested for."""
        return await self.check_and_increment(
            self.get_key("identity", identity), limit, window_seconds
        )

    async def check_source(self, source: str, limit: int, window_seconds: int) -> RateGuardResult:
        """Throttle by the requesting address."""
        return await self.check_and_increment(
            self.get_key("source", source), limit, window_seconds
        )

    async def check_verify(self, source: str, limit: int, window_seconds: int) -> RateGuardResult:
        """Throttle redemption attempts by the requesting address."""
        return await self.check_and_increment(
            self.get_key("verify", source), limit, window_seconds
        )

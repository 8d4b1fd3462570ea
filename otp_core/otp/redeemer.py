"""
OTP Redeemer
============
Validates and consumes a presented code exactly once.
"""

import time
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from otp_core.config import OTPConfig
from otp_core.errors import CodeExpired, CodeNotFound, RateLimited
from otp_core.rate_guard import RateGuard
from otp_core.store import KeyValueStore

from .codes import hash_identity, is_well_formed_code, mask_code
from .issuer import record_key
from .models import OtpRecord, RedeemedCode, utc_from_timestamp

logger = structlog.get_logger(__name__)


class OTPRedeemer:
    """
    Redeems one-time codes.

    The record is removed by the same store operation that reads it, so a
    code is consumed even when it turns out to be expired. Attempts are
    throttled per source address when a source is given.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], float] = time.time,
        rate_guard: Optional[RateGuard] = None,
    ):
        self.config = config or OTPConfig()
        self.store = store
        self.clock = clock
        self.rate_guard = rate_guard or RateGuard(store, prefix=self.config.key_prefix)

    async def redeem(self, code: str, source: Optional[str] = None) -> RedeemedCode:
        """
        Consume a code and return the identity it was issued for.

        Args:
            code: The presented code
            source: Requesting address; every attempt from it is counted

        Raises:
            RateLimited: Too many attempts from the source
            CodeNotFound: Never issued, already consumed, or evicted
            CodeExpired: Found but past its expiry (now consumed)
            StoreUnavailable: Store could not be reached
        """
        if source:
            result = await self.rate_guard.check_verify(
                source, self.config.verify_rate_limit, self.config.verify_rate_window_seconds
            )
            if not result.allowed:
                raise RateLimited(
                    "Too many verification attempts, please try again later.",
                    scope="verify",
                    retry_after=result.retry_after,
                )

        if not isinstance(code, str) or not is_well_formed_code(code):
            raise CodeNotFound("invalid otp")

        raw = await self.store.get_and_delete(record_key(self.config.key_prefix, code))
        if raw is None:
            logger.info("OTP not found or already used", code_prefix=mask_code(code))
            raise CodeNotFound("invalid otp")

        try:
            record = OtpRecord.decode(raw)
        except ValidationError as e:
            logger.error("Discarded unreadable OTP record", code_prefix=mask_code(code), error=str(e))
            raise CodeNotFound("invalid otp") from e

        # Store expiry is advisory; the record's own deadline is authoritative
        if record.is_expired(utc_from_timestamp(self.clock())):
            logger.info("OTP expired", code_prefix=mask_code(code), channel=record.channel.value)
            raise CodeExpired("invalid otp")

        logger.info(
            "OTP redeemed",
            code_prefix=mask_code(code),
            identity_hash=hash_identity(record.identity),
            channel=record.channel.value,
        )
        return RedeemedCode(
            identity=record.identity,
            channel=record.channel,
            issued_at=record.created_at,
        )

"""
OTP Issuer
==========
Creates, persists and dispatches one-time signin codes.
"""

import time
from datetime import timedelta
from typing import TYPE_CHECKING, Callable, Optional, Tuple, Union

import structlog

from otp_core.config import OTPConfig
from otp_core.errors import DeliveryFailed, RateLimited
from otp_core.rate_guard import RateGuard, RateGuardResult
from otp_core.store import KeyValueStore

from .codes import generate_code, hash_identity, mask_code
from .models import Channel, IssuedCode, OtpRecord, utc_from_timestamp
from .validation import normalize_identity, parse_channel

if TYPE_CHECKING:
    from otp_core.delivery import DeliverySender

logger = structlog.get_logger(__name__)


def record_key(prefix: str, code: str) -> str:
    """Store key for a code record."""
    return f"{prefix}:code:{code}"


class OTPIssuer:
    """
    Issues one-time codes.

    Flow: validate identity -> rate guard (source, then identity) ->
    generate code -> persist record with TTL -> deliver.

    `admit` and `send_code` split that flow in two so a caller can do its
    own work (an account lookup, say) after the attempt has been counted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        sender: "DeliverySender",
        rate_guard: Optional[RateGuard] = None,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or OTPConfig()
        self.store = store
        self.sender = sender
        self.rate_guard = rate_guard or RateGuard(store, prefix=self.config.key_prefix)
        self.clock = clock

    def _denied(self, scope: str, result: RateGuardResult) -> RateLimited:
        return RateLimited(
            f"Too many code requests for this {scope}, please try again later.",
            scope=scope,
            retry_after=result.retry_after,
        )

    async def admit(
        self,
        identity: str,
        channel: Union[Channel, str],
        source: Optional[str] = None,
    ) -> Tuple[str, Channel]:
        """
        Validate an identity and count the attempt against the rate guard.

        Args:
            identity: Phone number (whatsapp) or email address (email)
            channel: Delivery channel
            source: Requesting address, throttled separately when given

        Returns:
            Normalized identity and channel

        Raises:
            ValidationFailed: Malformed identity or unknown channel
            RateLimited: Source or identity is over its limit
            StoreUnavailable: Store could not be reached
        """
        channel = parse_channel(channel)
        identity = normalize_identity(identity, channel)
        config = self.config

        if source:
            result = await self.rate_guard.check_source(
                source, config.source_rate_limit, config.source_rate_window_seconds
            )
            if not result.allowed:
                raise self._denied("source", result)

        result = await self.rate_guard.check_identity(
            identity, config.identity_rate_limit, config.identity_rate_window_seconds
        )
        if not result.allowed:
            raise self._denied("identity", result)

        return identity, channel

    async def send_code(
        self,
        identity: str,
        channel: Union[Channel, str],
        locale: Optional[str] = None,
    ) -> IssuedCode:
        """
        Generate, persist and deliver a code for an admitted identity.

        The identity must already have passed `admit`; no rate check is done here.

        Raises:
            StoreUnavailable: Store could not be reached
            DeliveryFailed: Code was stored but could not be delivered
        """
        channel = parse_channel(channel)
        config = self.config

        now = self.clock()
        record = OtpRecord(
            code=generate_code(config.code_bytes),
            identity=identity,
            channel=channel,
            created_at=utc_from_timestamp(now),
            expires_at=utc_from_timestamp(now) + timedelta(seconds=config.code_ttl_seconds),
        )

        await self.store.set(
            record_key(config.key_prefix, record.code),
            record.encode(),
            config.code_ttl_seconds,
        )

        issued = IssuedCode(
            code=record.code,
            identity=record.identity,
            channel=record.channel,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )

        logger.info(
            "OTP issued",
            code_prefix=mask_code(record.code),
            identity_hash=hash_identity(identity),
            channel=channel.value,
            expires_in=config.code_ttl_seconds,
        )

        try:
            delivery = await self.sender.send(identity, record.code, channel, locale=locale)
        except Exception as e:
            logger.error(
                "OTP delivery raised",
                code_prefix=mask_code(record.code),
                channel=channel.value,
                error=str(e),
            )
            raise DeliveryFailed("Failed to deliver code", issued=issued, reason=str(e)) from e

        if not delivery.success:
            logger.error(
                "OTP delivery failed",
                code_prefix=mask_code(record.code),
                channel=channel.value,
                error=delivery.error,
            )
            raise DeliveryFailed("Failed to deliver code", issued=issued, reason=delivery.error)

        return issued

    async def issue(
        self,
        identity: str,
        channel: Union[Channel, str],
        source: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> IssuedCode:
        """
        Issue a code for an identity.

        Args:
            identity: Phone number (whatsapp) or email address (email)
            channel: Delivery channel
            source: Requesting address, throttled separately when given
            locale: Language passed on to the delivery sender

        Returns:
            IssuedCode with the code and its expiry

        Raises:
            ValidationFailed: Malformed identity or unknown channel
            RateLimited: Source or identity is over its limit
            StoreUnavailable: Store could not be reached
            DeliveryFailed: Code was stored but could not be delivered
        """
        identity, channel = await self.admit(identity, channel, source=source)
        return await self.send_code(identity, channel, locale=locale)

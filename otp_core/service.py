"""
OTP Service
===========
Wires store, rate guard, issuer, redeemer and delivery together.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

import structlog

from otp_core.config import OTPConfig
from otp_core.delivery import DeliveryRouter, DeliverySender, EmailerSender, WhatsAppSender
from otp_core.otp import Channel, IssuedCode, OTPIssuer, OTPRedeemer, RedeemedCode
from otp_core.rate_guard import RateGuard
from otp_core.store import InMemoryStore, KeyValueStore, RedisStore

logger = structlog.get_logger(__name__)


def build_sender(config: OTPConfig) -> DeliveryRouter:
    """Register a sender for every channel the config has credentials for."""
    router = DeliveryRouter()

    if config.whatsapp_access_token and config.whatsapp_phone_number_id:
        router.register(
            Channel.WHATSAPP,
            WhatsAppSender(
                access_token=config.whatsapp_access_token,
                phone_number_id=config.whatsapp_phone_number_id,
                api_url=config.whatsapp_api_url,
                template_name=config.whatsapp_template_name,
                template_language=config.whatsapp_template_language,
                timeout=config.delivery_timeout_seconds,
            ),
        )
    else:
        logger.warning("WhatsApp sender not configured")

    if config.emailer_url:
        router.register(
            Channel.EMAIL,
            EmailerSender(config.emailer_url, timeout=config.delivery_timeout_seconds),
        )
    else:
        logger.warning("Emailer sender not configured")

    return router


@dataclass
class OTPService:
    """Issuer and redeemer sharing one store handle."""
    issuer: OTPIssuer
    redeemer: OTPRedeemer
    store: KeyValueStore

    @classmethod
    def create(
        cls,
        store: KeyValueStore,
        sender: DeliverySender,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> "OTPService":
        config = config or OTPConfig()
        guard = RateGuard(store, prefix=config.key_prefix)
        return cls(
            issuer=OTPIssuer(store, sender, rate_guard=guard, config=config, clock=clock),
            redeemer=OTPRedeemer(store, config=config, clock=clock, rate_guard=guard),
            store=store,
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[OTPConfig] = None,
        redis_client=None,
        sender: Optional[DeliverySender] = None,
    ) -> "OTPService":
        """
        Build a Redis-backed service.

        Args:
            config: Defaults to OTPConfig.from_env()
            redis_client: Existing async Redis client; created from REDIS_URL if omitted
            sender: Delivery sender; built from config if omitted
        """
        config = config or OTPConfig.from_env()
        if redis_client is not None:
            store = RedisStore(redis_client)
        else:
            store = RedisStore.from_url(config.redis_url, timeout_seconds=config.store_timeout_seconds)
        return cls.create(store, sender or build_sender(config), config=config)

    @classmethod
    def in_memory(
        cls,
        sender: DeliverySender,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> "OTPService":
        """Build a single-process service for development and tests."""
        return cls.create(InMemoryStore(clock=clock), sender, config=config, clock=clock)

    async def issue(
        self,
        identity: str,
        channel: Union[Channel, str],
        source: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> IssuedCode:
        return await self.issuer.issue(identity, channel, source=source, locale=locale)

    async def admit(
        self,
        identity: str,
        channel: Union[Channel, str],
        source: Optional[str] = None,
    ) -> Tuple[str, Channel]:
        return await self.issuer.admit(identity, channel, source=source)

    async def send_code(
        self,
        identity: str,
        channel: Union[Channel, str],
        locale: Optional[str] = None,
    ) -> IssuedCode:
        return await self.issuer.send_code(identity, channel, locale=locale)

    async def redeem(self, code: str, source: Optional[str] = None) -> RedeemedCode:
        return await self.redeemer.redeem(code, source=source)

    async def close(self) -> None:
        await self.issuer.sender.close()
        await self.store.close()

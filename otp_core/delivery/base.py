"""
Delivery Senders
================
Base classes for handing one-time codes to email and WhatsApp providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
import structlog

from otp_core.otp.models import Channel

logger = structlog.get_logger(__name__)


@dataclass
class DeliveryResult:
    """Result of a delivery attempt."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class DeliverySender(ABC):
    """
    Abstract base class for code delivery.

    Implementations report provider failures in the returned DeliveryResult.
    """

    name: str = "base"

    @abstractmethod
    async def send(
        self,
        identity: str,
        code: str,
        channel: Channel,
        locale: Optional[str] = None,
    ) -> DeliveryResult:
        """
        Deliver a code to an identity.

        Args:
            identity: Normalized phone number or email address
            code: The one-time code
            channel: Channel the code was issued for
            locale: Language of the requesting client, if known

        Returns:
            DeliveryResult with provider response
        """
        pass

    async def close(self) -> None:
        """Clean up resources (e.g., close HTTP clients)."""
        pass


class DeliveryRouter(DeliverySender):
    """Dispatches each delivery to the sender registered for its channel."""

    name = "router"

    def __init__(self, senders: Optional[Dict[Channel, DeliverySender]] = None):
        self._senders: Dict[Channel, DeliverySender] = dict(senders or {})

    def register(self, channel: Channel, sender: DeliverySender) -> None:
        """Register the sender for a channel."""
        self._senders[channel] = sender
        logger.info("Delivery sender registered", channel=channel.value, sender=sender.name)

    def get(self, channel: Channel) -> Optional[DeliverySender]:
        return self._senders.get(channel)

    async def send(
        self,
        identity: str,
        code: str,
        channel: Channel,
        locale: Optional[str] = None,
    ) -> DeliveryResult:
        sender = self._senders.get(channel)
        if sender is None:
            return DeliveryResult(
                success=False,
                error=f"No sender configured for channel {channel.value}",
            )
        return await sender.send(identity, code, channel, locale=locale)

    async def close(self) -> None:
        """Close all registered senders, then raise the first failure if any."""
        errors = []
        for channel, sender in self._senders.items():
            try:
                await sender.close()
            except Exception as e:
                logger.error("Failed to close sender", channel=channel.value, sender=sender.name, error=str(e))
                errors.append(e)
        if errors:
            raise errors[0]

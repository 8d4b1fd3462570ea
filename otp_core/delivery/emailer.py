"""
Emailer Sender
==============
Delivers codes through the internal emailer service.
"""

from typing import Optional, Dict, Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from otp_core.otp.codes import hash_identity
from otp_core.otp.models import Channel

from .base import DeliverySender, DeliveryResult

logger = structlog.get_logger(__name__)


class EmailerSender(DeliverySender):
    """Posts an "otp" template request to the emailer service."""

    name = "emailer"

    def __init__(
        self,
        base_url: str,
        template_name: str = "otp",
        locale: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.template_name = template_name
        self.locale = locale
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def build_payload(self, email: str, code: str) -> Dict[str, Any]:
        return {
            "templateName": self.template_name,
            "recordId": email,
            "params": {"otp": code},
        }

    @retry(
        retry=retry_if_exception_type(httpx.ConnectError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        return await self._client.post(f"{self.base_url}/otp", json=payload, headers=headers)

    async def send(
        self,
        identity: str,
        code: str,
        channel: Channel = Channel.EMAIL,
        locale: Optional[str] = None,
    ) -> DeliveryResult:
        # Request locale wins over the configured default
        locale = locale or self.locale
        headers = {"Accept-Language": locale} if locale else {}

        try:
            response = await self._post(self.build_payload(identity, code), headers)
        except httpx.HTTPError as e:
            logger.error("Failed to reach emailer", identity_hash=hash_identity(identity), error=str(e))
            return DeliveryResult(success=False, error=str(e))

        if response.is_success:
            logger.info("OTP email queued", identity_hash=hash_identity(identity))
            return DeliveryResult(success=True)

        logger.error(
            "Emailer rejected OTP email",
            identity_hash=hash_identity(identity),
            status=response.status_code,
        )
        return DeliveryResult(success=False, error=f"HTTP {response.status_code}: {response.text[:200]}")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

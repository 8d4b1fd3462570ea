"""
WhatsApp Sender
===============
Delivers codes through the WhatsApp Cloud API login template.
"""

from typing import Optional, Dict, Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from otp_core.otp.codes import hash_identity
from otp_core.otp.models import Channel

from .base import DeliverySender, DeliveryResult

logger = structlog.get_logger(__name__)


class WhatsAppSender(DeliverySender):
    """
    Sends the code as a template message.

    The code fills both the body parameter and the URL button parameter
    of the template (copy-code / autofill button).
    """

    name = "whatsapp"

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_url: str = "https://graph.facebook.com/v18.0",
        template_name: str = "otpcode",
        template_language: str = "es",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.phone_number_id = phone_number_id
        self.template_name = template_name
        self.template_language = template_language
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    @property
    def messages_url(self) -> str:
        return f"{self.api_url}/{self.phone_number_id}/messages"

    def build_payload(self, phone: str, code: str) -> Dict[str, Any]:
        """Build the template message payload."""
        return {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "template",
            "template": {
                "name": self.template_name,
                "language": {"code": self.template_language},
                "components": [
                    {
                        "type": "body",
                        "parameters": [{"type": "text", "text": code}],
                    },
                    {
                        "type": "button",
                        "sub_type": "url",
                        "index": "0",
                        "parameters": [{"type": "text", "text": code}],
                    },
                ],
            },
        }

    @retry(
        retry=retry_if_exception_type(httpx.ConnectError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self._client.post(self.messages_url, json=payload, headers=self._headers)

    async def send(
        self,
        identity: str,
        code: str,
        channel: Channel = Channel.WHATSAPP,
        locale: Optional[str] = None,
    ) -> DeliveryResult:
        # The template language is fixed by config; locale is not used
        payload = self.build_payload(identity, code)

        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error(
                "Failed to send WhatsApp OTP",
                identity_hash=hash_identity(identity),
                error=str(e),
            )
            return DeliveryResult(success=False, error=str(e))

        try:
            data = response.json()
        except ValueError:
            data = {"body": response.text}
        if not isinstance(data, dict):
            data = {"body": data}

        if response.is_success:
            messages = data.get("messages") or [{}]
            message_id = messages[0].get("id")
            logger.info(
                "WhatsApp OTP sent",
                identity_hash=hash_identity(identity),
                message_id=message_id,
            )
            return DeliveryResult(success=True, message_id=message_id, raw_response=data)

        error = data.get("error", {})
        message = error.get("message") if isinstance(error, dict) else str(error)
        logger.error(
            "WhatsApp API rejected OTP message",
            identity_hash=hash_identity(identity),
            status=response.status_code,
            error=message,
        )
        return DeliveryResult(
            success=False,
            error=message or f"HTTP {response.status_code}",
            raw_response=data,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

"""
app/services/waha_service.py

Purpose: WhatsApp message sending via the WAHA gateway

- One WAHA session per tenant WhatsApp number
- Sends plain text messages
- Raises DispatchError on timeouts and non-2xx responses
"""

import httpx
from typing import Dict, Any, Optional
from app.core.config import settings
from app.core.exceptions import DispatchError
from app.core.logging import get_logger
from utils.whatsapp_utils import to_chat_id

logger = get_logger(__name__)


class WahaService:
    """Service for sending WhatsApp messages through a WAHA server"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.WAHA_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.WAHA_API_KEY
        self.timeout = timeout or settings.WAHA_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return headers

    async def send_text(self, session: str, to: str, text: str) -> Dict[str, Any]:
        """
        Sends a WhatsApp text message from a tenant session

        Args:
            session: WAHA session name of the tenant
            to: Recipient phone number or chat id (27820000000@c.us)
            text: Message text

        Returns:
            Gateway response body

        Raises:
            DispatchError: gateway unreachable, timed out or rejected the message
        """
        chat_id = to_chat_id(to)
        payload = {"session": session, "chatId": chat_id, "text": text}

        logger.info(f"📤 Sending WAHA message to {chat_id}", extra={"session_id": session})

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/api/sendText",
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout
                )
        except httpx.TimeoutException:
            logger.error("WAHA API timeout", extra={"session_id": session})
            raise DispatchError("WhatsApp gateway timeout", details={"session": session})
        except httpx.HTTPError as e:
            logger.error(f"Error sending WAHA message: {e}", extra={"session_id": session})
            raise DispatchError("WhatsApp gateway unreachable", details={"session": session})

        if response.status_code not in (200, 201):
            logger.error(f"❌ WAHA API error: {response.status_code} - {response.text}")
            raise DispatchError(
                f"WhatsApp gateway error: {response.status_code}",
                details={"session": session, "status_code": response.status_code}
            )

        logger.info("✅ Message sent", extra={"session_id": session})
        try:
            return response.json()
        except ValueError:
            return {}

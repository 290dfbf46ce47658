from __future__ import annotations

import httpx

from appointment_engine.application.ports.messaging import MessagingPort
from appointment_engine.domain.entities.message import SendResult
from appointment_engine.infrastructure.messaging.zapi_client import ZApiClient


class WhatsAppMessaging(MessagingPort):
    def __init__(self, client: ZApiClient) -> None:
        self._client = client

    async def send(self, to: str, message: str) -> SendResult:
        if not to or not message:
            return SendResult(success=False, error="'to' and 'message' are required")
        try:
            await self._client.send_text(phone=to, message=message)
        except httpx.HTTPStatusError as e:
            return SendResult(success=False, error=f"WhatsApp API error: {e.response.status_code}")
        except httpx.HTTPError as e:
            return SendResult(success=False, error=str(e) or e.__class__.__name__)
        return SendResult(success=True)

    async def aclose(self) -> None:
        await self._client.aclose()

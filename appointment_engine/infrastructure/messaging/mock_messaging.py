from __future__ import annotations

import logging

from appointment_engine.application.ports.messaging import MessagingPort
from appointment_engine.domain.entities.message import SendResult


class MockMessaging(MessagingPort):
    """Simulates delivery when WhatsApp credentials are not configured. Keeps what it sent."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self._logger = logging.getLogger(__name__)

    async def send(self, to: str, message: str) -> SendResult:
        self.sent.append((to, message))
        self._logger.info("Mock WhatsApp send", extra={"recipient_id": to, "text": message})
        return SendResult(success=True)

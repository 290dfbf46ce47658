from __future__ import annotations

import logging
from typing import Any

import httpx


class ZApiClient:
    def __init__(
        self,
        instance_id: str,
        token: str,
        base_url: str = "https://api.z-api.io",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._send_endpoint = f"{base_url.rstrip('/')}/instances/{instance_id}/token/{token}/send-text"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    async def send_text(self, phone: str, message: str) -> dict[str, Any]:
        payload = {"phone": phone, "message": message}
        resp = await self._client.post(self._send_endpoint, json=payload)
        if resp.status_code >= 400:
            try:
                error_body = resp.json()
            except Exception:
                error_body = resp.text

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "status": resp.status_code,
                    "error_message": error_body,
                    "text_length": len(message),
                },
            )
            resp.raise_for_status()
        try:
            return resp.json()
        except ValueError:
            return {}

    async def aclose(self) -> None:
        await self._client.aclose()

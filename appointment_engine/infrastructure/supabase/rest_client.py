from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from appointment_engine.application.exceptions import PersistenceError


def in_filter(values: Iterable[str]) -> str:
    quoted = ",".join('"' + str(v).replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


class SupabaseRestClient:
    """Thin PostgREST/Auth client. Every transport or HTTP failure becomes PersistenceError."""

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url or not service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the Supabase datastore")
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
        }
        self._logger = logging.getLogger(__name__)

    async def select(self, table: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json() or []

    async def count(self, table: str, params: list[tuple[str, str]]) -> int:
        response = await self._request(
            "GET",
            f"/rest/v1/{table}",
            params=[("select", "id"), ("limit", "1"), *params],
            headers={"Prefer": "count=exact"},
        )
        content_range = response.headers.get("Content-Range", "")
        total = content_range.rsplit("/", 1)[-1]
        if not total.isdigit():
            raise PersistenceError(f"Missing row count for {table}")
        return int(total)

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json() or []
        if not rows:
            raise PersistenceError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, params: list[tuple[str, str]], patch: dict[str, Any]) -> list[dict[str, Any]]:
        """PATCH rows matching the filters. Returns the rows actually changed."""
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=params,
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    async def rpc(self, function: str, args: dict[str, Any]) -> Any:
        response = await self._request("POST", f"/rest/v1/rpc/{function}", json=args)
        if not response.content:
            return None
        return response.json()

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        response = await self._request("GET", f"/auth/v1/admin/users/{user_id}", allow_not_found=True)
        if response.status_code == 404:
            return None
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.HTTPError as e:
            self._logger.error("Supabase request failed", extra={"path": path, "error": str(e)})
            raise PersistenceError(f"Supabase request to {path} failed: {e}") from e

        if allow_not_found and response.status_code == 404:
            return response
        if response.status_code >= 400:
            try:
                detail = response.json().get("message") or response.text
            except Exception:
                detail = response.text
            self._logger.error(
                "Supabase request rejected",
                extra={"path": path, "status": response.status_code, "error": detail},
            )
            raise PersistenceError(f"Supabase rejected {method} {path} ({response.status_code}): {detail}")
        return response

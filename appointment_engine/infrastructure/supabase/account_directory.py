from __future__ import annotations

import asyncio
import logging

from appointment_engine.application.ports.account_directory import AccountDirectoryPort
from appointment_engine.domain.entities.waitlist import Contact
from appointment_engine.infrastructure.supabase.rest_client import SupabaseRestClient, in_filter


class SupabaseAccountDirectory(AccountDirectoryPort):
    """Resolves auth users to their email, then the client record with that email to a phone."""

    def __init__(self, rest: SupabaseRestClient) -> None:
        self._rest = rest
        self._logger = logging.getLogger(__name__)

    async def lookup(self, user_ids: list[str]) -> dict[str, Contact]:
        if not user_ids:
            return {}
        users = await asyncio.gather(*(self._rest.get_user(u) for u in user_ids))
        emails = {
            user_id: user.get("email")
            for user_id, user in zip(user_ids, users)
            if user and user.get("email")
        }
        if not emails:
            return {}

        rows = await self._rest.select(
            "clientes",
            [
                ("select", "email,phone"),
                ("email", in_filter(sorted(set(emails.values())))),
                ("phone", "not.is.null"),
            ],
        )
        phones = {r["email"]: r.get("phone") for r in rows if r.get("email")}
        self._logger.info(
            "Contacts resolved",
            extra={"count": len(phones), "requested": len(user_ids)},
        )
        return {user_id: Contact(email=email, phone=phones.get(email)) for user_id, email in emails.items()}

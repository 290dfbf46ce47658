from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from appointment_engine.application.ports.waitlist_store import WaitlistStorePort
from appointment_engine.application.utils.bounded import call_primary
from appointment_engine.domain.entities.waitlist import WaitlistEntry

logger = logging.getLogger(__name__)


@dataclass
class JoinWaitlistUseCase:
    waitlist: WaitlistStorePort
    timeout: float | None = None

    async def execute(
        self,
        owner_id: str,
        professional_id: str,
        day: date,
        client_user_id: str,
    ) -> WaitlistEntry:
        if not (owner_id and professional_id and client_user_id):
            raise ValueError("owner_id, professional_id and client_user_id are required.")

        entry = await call_primary(
            self.waitlist.get_or_create(owner_id, professional_id, day, client_user_id),
            self.timeout,
            "join waitlist",
        )
        logger.info(
            "Waitlist joined",
            extra={"professional_id": professional_id, "day": day.isoformat(), "entry_id": entry.id},
        )
        return entry

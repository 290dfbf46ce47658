from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from appointment_engine.domain.entities.waitlist import WaitlistEntry


class WaitlistStorePort(ABC):
    @abstractmethod
    async def list_unnotified(self, professional_id: str, day: date) -> list[WaitlistEntry]:
        raise NotImplementedError

    @abstractmethod
    async def mark_notified(self, entry_ids: list[str], notified_at: datetime) -> int:
        """
        Set `notified_at` on the given entries in one batch.
        Entries that were already notified keep their original timestamp.
        Returns the number of entries newly marked.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_or_create(
        self,
        owner_id: str,
        professional_id: str,
        day: date,
        client_user_id: str,
    ) -> WaitlistEntry:
        raise NotImplementedError

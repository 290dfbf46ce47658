from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable

from appointment_engine.domain.entities.appointment import Appointment, AppointmentDetails, AppointmentStatus


class AppointmentStorePort(ABC):
    @abstractmethod
    async def get_details(self, appointment_id: str) -> AppointmentDetails | None:
        """Load an appointment with its services, client and professional name. None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        """
        Conditional write of the status column.

        Returns False (conflict) when `expected_status` is given and the stored
        status differs, or when the stored status already equals `status`.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_for_professional(
        self,
        professional_id: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        """Appointments of a professional starting within [start, end) with one of `statuses`."""
        raise NotImplementedError

    @abstractmethod
    async def count_for_client(self, client_id: str, status: AppointmentStatus) -> int:
        raise NotImplementedError

    @abstractmethod
    async def list_reminder_candidates(self, start: datetime, end: datetime) -> list[AppointmentDetails]:
        """Confirmed appointments with no reminder sent, starting within [start, end)."""
        raise NotImplementedError

    @abstractmethod
    async def mark_reminders_sent(self, appointment_ids: list[str], sent_at: datetime) -> None:
        raise NotImplementedError

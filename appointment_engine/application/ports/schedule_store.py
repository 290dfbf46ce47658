from __future__ import annotations

from abc import ABC, abstractmethod

from appointment_engine.domain.entities.appointment import ServiceInfo
from appointment_engine.domain.entities.working_hours import WorkingHours


class ScheduleStorePort(ABC):
    @abstractmethod
    async def get_working_hours(self, professional_id: str) -> WorkingHours | None:
        """Weekly working hours of a professional. None if the professional is unknown."""
        raise NotImplementedError

    @abstractmethod
    async def get_services(self, service_ids: list[str]) -> list[ServiceInfo]:
        """Resolve services by id. Unknown ids are left out of the result."""
        raise NotImplementedError

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.ports.schedule_store import ScheduleStorePort
from appointment_engine.application.utils.availability import compute_slots
from appointment_engine.application.utils.bounded import call_primary
from appointment_engine.domain.entities.appointment import BLOCKING_STATUSES, ServiceInfo


@dataclass(frozen=True)
class SlotsResult:
    professional_id: str
    day: date
    duration_minutes: int | None
    step_minutes: int
    slots: list[str]


class AvailableSlotsUseCase:
    def __init__(
        self,
        schedule: ScheduleStorePort,
        appointments: AppointmentStorePort,
        timezone: ZoneInfo,
        single_step_minutes: int = 5,
        combo_step_minutes: int = 30,
        timeout: float | None = None,
    ) -> None:
        self._schedule = schedule
        self._appointments = appointments
        self._timezone = timezone
        self._single_step = single_step_minutes
        self._combo_step = combo_step_minutes
        self._timeout = timeout
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        professional_id: str,
        day: date,
        service_ids: list[str] | None = None,
        duration_minutes: int | None = None,
        step_minutes: int | None = None,
        timeout: float | None = None,
    ) -> SlotsResult:
        """
        Bookable start times for a professional on `day`.

        The duration is either given explicitly (combo booking passes the
        summed duration) or resolved from `service_ids`. A single service uses
        the fine step, anything else the combo step, unless `step_minutes`
        overrides both.
        """
        service_ids = [s for s in (service_ids or []) if s]
        timeout = timeout if timeout is not None else self._timeout
        if step_minutes:
            step = step_minutes
        elif len(service_ids) == 1 and not duration_minutes:
            step = self._single_step
        else:
            step = self._combo_step

        day_start = datetime.combine(day, time.min, tzinfo=self._timezone)
        day_end = day_start + timedelta(days=1)

        working_hours, services, appointments = await asyncio.gather(
            call_primary(self._schedule.get_working_hours(professional_id), timeout, "load working hours"),
            call_primary(self._load_services(service_ids), timeout, "load services"),
            call_primary(
                self._appointments.list_for_professional(professional_id, day_start, day_end, BLOCKING_STATUSES),
                timeout,
                "load existing appointments",
            ),
        )

        duration = duration_minutes or _total_duration(service_ids, services)
        slots = compute_slots(
            day=day,
            working_hours=working_hours,
            existing_appointments=appointments,
            duration_minutes=duration,
            step_minutes=step,
            timezone=self._timezone,
        )
        self._logger.info(
            "Slots computed",
            extra={"professional_id": professional_id, "day": day.isoformat(), "count": len(slots)},
        )
        return SlotsResult(
            professional_id=professional_id,
            day=day,
            duration_minutes=duration,
            step_minutes=step,
            slots=slots,
        )

    async def _load_services(self, service_ids: list[str]) -> list[ServiceInfo]:
        if not service_ids:
            return []
        return await self._schedule.get_services(service_ids)


def _total_duration(service_ids: list[str], services: list[ServiceInfo]) -> int | None:
    by_id = {s.id: s for s in services}
    total = 0
    for service_id in service_ids:
        service = by_id.get(service_id)
        if service is None or not service.duration_minutes:
            return None
        total += service.duration_minutes
    return total or None

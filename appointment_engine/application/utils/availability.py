from __future__ import annotations

from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from appointment_engine.application.utils.clock import to_clock_string, to_minutes
from appointment_engine.domain.entities.appointment import BLOCKING_STATUSES, Appointment
from appointment_engine.domain.entities.busy_interval import BusyInterval
from appointment_engine.domain.entities.working_hours import WorkingHours

MINUTES_PER_DAY = 24 * 60


def compute_slots(
    day: date,
    working_hours: WorkingHours | None,
    existing_appointments: Iterable[Appointment],
    duration_minutes: int | None,
    step_minutes: int,
    timezone: ZoneInfo | None = None,
) -> list[str]:
    """
    Return every bookable start time ("HH:MM") on `day` for a service of
    `duration_minutes`, sweeping the working window in `step_minutes` steps.

    An unknown day, an inactive day or an unknown duration means no
    availability and yields an empty list.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    schedule = working_hours.schedule_for(day) if working_hours else None
    if schedule is None or not schedule.active or not duration_minutes or duration_minutes <= 0:
        return []

    work_start = to_minutes(schedule.start)
    work_end = to_minutes(schedule.end)

    busy = [BusyInterval(to_minutes(b.start), to_minutes(b.end)) for b in schedule.breaks]
    busy.extend(_appointment_intervals(day, existing_appointments, timezone))

    slots: list[str] = []
    slot_start = work_start
    while slot_start + duration_minutes <= work_end:
        slot_end = slot_start + duration_minutes
        if not any(interval.overlaps(slot_start, slot_end) for interval in busy):
            slots.append(to_clock_string(slot_start))
        slot_start += step_minutes
    return slots


def _appointment_intervals(
    day: date,
    appointments: Iterable[Appointment],
    timezone: ZoneInfo | None,
) -> list[BusyInterval]:
    intervals: list[BusyInterval] = []
    for appointment in appointments:
        if appointment.status not in BLOCKING_STATUSES:
            continue
        start = _local(appointment.start_time, timezone)
        if start.date() != day:
            continue
        end = _local(appointment.end_time, timezone)
        # Runs past midnight: busy until the end of this day.
        end_minutes = MINUTES_PER_DAY if end.date() > day else to_minutes(end.strftime("%H:%M"))
        intervals.append(
            BusyInterval(
                start_minutes=to_minutes(start.strftime("%H:%M")),
                end_minutes=end_minutes,
            )
        )
    return intervals


def _local(value: datetime, timezone: ZoneInfo | None) -> datetime:
    if timezone is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone)

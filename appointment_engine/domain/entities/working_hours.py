from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping

# Sunday-indexed, matching how schedules are stored.
WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


@dataclass(frozen=True)
class BreakWindow:
    start: str
    end: str


@dataclass(frozen=True)
class DaySchedule:
    active: bool
    start: str
    end: str
    breaks: tuple[BreakWindow, ...] = ()

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "DaySchedule":
        breaks = tuple(
            BreakWindow(start=str(b.get("start") or ""), end=str(b.get("end") or ""))
            for b in (payload.get("breaks") or [])
            if isinstance(b, Mapping)
        )
        return DaySchedule(
            active=bool(payload.get("active", False)),
            start=str(payload.get("start") or ""),
            end=str(payload.get("end") or ""),
            breaks=breaks,
        )


@dataclass(frozen=True)
class WorkingHours:
    days: dict[int, DaySchedule] = field(default_factory=dict)

    def schedule_for(self, day: date) -> DaySchedule | None:
        return self.days.get(sunday_index(day))

    @staticmethod
    def from_payload(payload: Mapping[str, Any] | None) -> "WorkingHours":
        """
        Build from the stored JSON: keys are weekday names ("monday") or
        Sunday-based indexes. Unknown keys and non-mapping values are ignored.
        """
        days: dict[int, DaySchedule] = {}
        for key, value in (payload or {}).items():
            index = _weekday_index(key)
            if index is None or not isinstance(value, Mapping):
                continue
            days[index] = DaySchedule.from_payload(value)
        return WorkingHours(days=days)


def sunday_index(day: date) -> int:
    return (day.weekday() + 1) % 7


def _weekday_index(key: Any) -> int | None:
    if isinstance(key, int):
        return key if 0 <= key < 7 else None
    text = str(key).strip().lower()
    if text.isdigit():
        value = int(text)
        return value if 0 <= value < 7 else None
    if text in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(text)
    return None

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    done = "done"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.done, AppointmentStatus.cancelled})

# Statuses that occupy a professional's time when computing availability.
BLOCKING_STATUSES = frozenset({AppointmentStatus.confirmed, AppointmentStatus.done})


@dataclass(frozen=True)
class Appointment:
    id: str
    owner_id: str
    professional_id: str
    client_id: str | None
    service_ids: tuple[str, ...]
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.pending
    reminder_sent_at: datetime | None = None
    location_id: str | None = None


@dataclass(frozen=True)
class ServiceInfo:
    id: str
    name: str
    price: Decimal
    duration_minutes: int | None = None


@dataclass(frozen=True)
class ClientInfo:
    id: str
    name: str
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class AppointmentDetails:
    """Appointment joined with the records the workflows need to reason about it."""

    appointment: Appointment
    services: tuple[ServiceInfo, ...] = ()
    client: ClientInfo | None = None
    professional_name: str | None = None

    @property
    def total_price(self) -> Decimal:
        return sum((s.price for s in self.services), Decimal("0"))

    @property
    def service_label(self) -> str:
        return " + ".join(s.name for s in self.services)

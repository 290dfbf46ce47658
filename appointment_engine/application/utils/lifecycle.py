from __future__ import annotations

from appointment_engine.application.exceptions import InvalidTransition
from appointment_engine.domain.entities.appointment import AppointmentStatus

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.pending: frozenset({AppointmentStatus.confirmed, AppointmentStatus.cancelled}),
    AppointmentStatus.confirmed: frozenset({AppointmentStatus.done, AppointmentStatus.cancelled}),
    AppointmentStatus.done: frozenset(),
    AppointmentStatus.cancelled: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(appointment_id: str, current: AppointmentStatus, target: AppointmentStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Appointment {appointment_id} cannot move from '{current.value}' to '{target.value}'."
        )

from __future__ import annotations

import logging
from dataclasses import dataclass

from appointment_engine.application.exceptions import NotFound, PersistenceError
from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.utils.bounded import call_primary
from appointment_engine.application.utils.lifecycle import ensure_transition
from appointment_engine.domain.entities.appointment import AppointmentStatus
from appointment_engine.domain.entities.workflow_result import WorkflowResult

logger = logging.getLogger(__name__)


@dataclass
class ConfirmAppointmentUseCase:
    appointments: AppointmentStorePort
    timeout: float | None = None

    async def execute(self, appointment_id: str, timeout: float | None = None) -> WorkflowResult:
        timeout = timeout if timeout is not None else self.timeout

        details = await call_primary(
            self.appointments.get_details(appointment_id), timeout, "load appointment"
        )
        if details is None:
            raise NotFound(f"Appointment {appointment_id} not found.")

        status = details.appointment.status
        if status == AppointmentStatus.confirmed:
            return WorkflowResult(message="Appointment was already confirmed.", already_applied=True)
        ensure_transition(appointment_id, status, AppointmentStatus.confirmed)

        applied = await call_primary(
            self.appointments.update_status(
                appointment_id, AppointmentStatus.confirmed, expected_status=status
            ),
            timeout,
            "confirm appointment",
        )
        if not applied:
            raise PersistenceError(f"Appointment {appointment_id} was modified concurrently.")

        logger.info("Appointment confirmed", extra={"appointment_id": appointment_id})
        return WorkflowResult(message="Appointment confirmed.")

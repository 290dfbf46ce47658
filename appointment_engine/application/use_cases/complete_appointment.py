from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from appointment_engine.application.exceptions import IntegrityError, InvalidTransition, NotFound, PersistenceError
from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.ports.ledger import LedgerPort
from appointment_engine.application.ports.loyalty import LoyaltyPort
from appointment_engine.application.ports.referral_store import ReferralStorePort
from appointment_engine.application.utils.bounded import call_primary, run_step
from appointment_engine.application.utils.lifecycle import ensure_transition
from appointment_engine.domain.entities.appointment import TERMINAL_STATUSES, AppointmentDetails, AppointmentStatus
from appointment_engine.domain.entities.ledger import LedgerEntry, LedgerEntryType
from appointment_engine.domain.entities.loyalty import LoyaltyProgram
from appointment_engine.domain.entities.workflow_result import StepOutcome, WorkflowResult

COMPLETED_MESSAGE = "Appointment completed, ledger entry created and loyalty updated."
ALREADY_COMPLETED_MESSAGE = "Appointment was already completed."


class CompleteAppointmentUseCase:
    def __init__(
        self,
        appointments: AppointmentStorePort,
        ledger: LedgerPort,
        loyalty: LoyaltyPort,
        referrals: ReferralStorePort,
        loyalty_program: LoyaltyProgram | None = None,
        timeout: float | None = None,
    ) -> None:
        self._appointments = appointments
        self._ledger = ledger
        self._loyalty = loyalty
        self._referrals = referrals
        self._loyalty_program = loyalty_program
        self._timeout = timeout
        self._logger = logging.getLogger(__name__)

    async def execute(self, appointment_id: str, timeout: float | None = None) -> WorkflowResult:
        """
        Move an appointment to done and bill it.

        Calling this again for a done appointment reports success without
        touching the ledger, loyalty or referrals. Loyalty and referral
        bookkeeping never fail the call; their outcome is in the result steps.
        """
        timeout = timeout if timeout is not None else self._timeout

        details = await call_primary(
            self._appointments.get_details(appointment_id), timeout, "load appointment"
        )
        if details is None:
            raise NotFound(f"Appointment {appointment_id} not found.")

        appointment = details.appointment
        if appointment.status == AppointmentStatus.done:
            self._logger.info("Appointment already completed", extra={"appointment_id": appointment_id})
            return WorkflowResult(message=ALREADY_COMPLETED_MESSAGE, already_applied=True)

        ensure_transition(appointment_id, appointment.status, AppointmentStatus.done)

        resolved = {s.id for s in details.services}
        missing = [s for s in appointment.service_ids if s not in resolved]
        if not details.services or missing or details.client is None:
            raise IntegrityError(f"Service or client not found for appointment {appointment_id}.")

        applied = await call_primary(
            self._appointments.update_status(
                appointment_id, AppointmentStatus.done, expected_status=appointment.status
            ),
            timeout,
            "mark appointment as done",
        )
        if not applied:
            return await self._resolve_conflict(appointment_id, timeout)

        # Committed: the rest runs to the end even if the caller goes away.
        return await asyncio.shield(self._after_commit(details, timeout))

    async def _resolve_conflict(self, appointment_id: str, timeout: float | None) -> WorkflowResult:
        current = await call_primary(
            self._appointments.get_details(appointment_id), timeout, "reload appointment"
        )
        if current is None:
            raise NotFound(f"Appointment {appointment_id} not found.")
        status = current.appointment.status
        if status == AppointmentStatus.done:
            self._logger.info(
                "Concurrent completion detected, skipping side effects",
                extra={"appointment_id": appointment_id},
            )
            return WorkflowResult(message=ALREADY_COMPLETED_MESSAGE, already_applied=True)
        if status in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Appointment {appointment_id} cannot move from '{status.value}' to 'done'."
            )
        raise PersistenceError(f"Appointment {appointment_id} was modified concurrently.")

    async def _after_commit(self, details: AppointmentDetails, timeout: float | None) -> WorkflowResult:
        appointment = details.appointment
        entry = LedgerEntry(
            owner_id=appointment.owner_id,
            location_id=appointment.location_id,
            type=LedgerEntryType.inflow,
            amount=details.total_price,
            description=f"{details.service_label} — {details.client.name}",
            appointment_id=appointment.id,
            created_at=datetime.now(timezone.utc),
        )
        try:
            stored = await call_primary(self._ledger.insert(entry), timeout, "create ledger entry")
        except PersistenceError:
            self._logger.error(
                "Appointment completed without ledger entry",
                extra={"appointment_id": appointment.id, "amount": str(entry.amount)},
            )
            raise

        loyalty, referral = await asyncio.gather(
            run_step("loyalty", self._increment_loyalty(details), timeout, appointment.id),
            run_step("referral", self._resolve_referral(details), timeout, appointment.id),
        )

        self._logger.info(
            "Appointment completed",
            extra={"appointment_id": appointment.id, "amount": str(stored.amount)},
        )
        return WorkflowResult(
            message=COMPLETED_MESSAGE,
            steps=(
                StepOutcome.succeeded("ledger", entry_id=stored.id, amount=str(stored.amount)),
                loyalty,
                referral,
            ),
        )

    async def _increment_loyalty(self, details: AppointmentDetails) -> StepOutcome:
        counter = await self._loyalty.increment(details.appointment.owner_id, details.client.id)
        if self._loyalty_program is None:
            return StepOutcome.succeeded("loyalty", count=counter.count)
        standing = self._loyalty_program.standing(counter.count)
        return StepOutcome.succeeded(
            "loyalty",
            count=counter.count,
            tier=standing.tier,
            next_tier_at=standing.next_tier_at,
        )

    async def _resolve_referral(self, details: AppointmentDetails) -> StepOutcome:
        client = details.client
        if not client.email:
            return StepOutcome.skipped("referral", "client has no email")

        referral = await self._referrals.find_pending(details.appointment.owner_id, client.email)
        if referral is None:
            return StepOutcome.skipped("referral", "no pending referral")

        # The appointment just completed is included in the count.
        completed = await self._appointments.count_for_client(client.id, AppointmentStatus.done)
        if completed != 1:
            return StepOutcome.skipped("referral", f"client has {completed} completed appointments")

        if not await self._referrals.complete(referral.id, client.id):
            return StepOutcome.skipped("referral", "referral no longer pending")

        self._logger.info(
            "Referral completed",
            extra={"appointment_id": details.appointment.id, "referral_id": referral.id},
        )
        return StepOutcome.succeeded("referral", referral_id=referral.id)

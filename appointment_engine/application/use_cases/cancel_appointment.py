from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from appointment_engine.application.exceptions import InvalidTransition, NotFound, PersistenceError
from appointment_engine.application.ports.account_directory import AccountDirectoryPort
from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.ports.messaging import MessagingPort
from appointment_engine.application.ports.waitlist_store import WaitlistStorePort
from appointment_engine.application.utils.bounded import attempt, call_primary, run_step
from appointment_engine.application.utils.lifecycle import ensure_transition
from appointment_engine.domain.entities.appointment import TERMINAL_STATUSES, AppointmentDetails, AppointmentStatus
from appointment_engine.domain.entities.waitlist import Contact
from appointment_engine.domain.entities.workflow_result import StepOutcome, WorkflowResult

NO_WAITLIST_MESSAGE = "Appointment cancelled. No one on the waitlist."


def build_waitlist_message(day: date, professional_name: str | None) -> str:
    who = f" with {professional_name}" if professional_name else ""
    return f"Good news! A slot opened up on {day.strftime('%d/%m/%Y')}{who}. Book it in the app!"


class CancelAppointmentUseCase:
    def __init__(
        self,
        appointments: AppointmentStorePort,
        waitlist: WaitlistStorePort,
        directory: AccountDirectoryPort,
        messaging: MessagingPort,
        timezone: ZoneInfo,
        timeout: float | None = None,
    ) -> None:
        self._appointments = appointments
        self._waitlist = waitlist
        self._directory = directory
        self._messaging = messaging
        self._timezone = timezone
        self._timeout = timeout
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        appointment_id: str,
        timeout: float | None = None,
        now: datetime | None = None,
    ) -> WorkflowResult:
        """
        Cancel an appointment and tell the waitlist for that professional and
        day that a slot opened up.

        Waitlist entries are marked notified once processed, whatever the
        delivery outcome, so a later run never notifies them again.
        """
        timeout = timeout if timeout is not None else self._timeout
        now = now or datetime.now(timezone.utc)

        details = await call_primary(
            self._appointments.get_details(appointment_id), timeout, "load appointment"
        )
        if details is None:
            raise NotFound(f"Appointment {appointment_id} not found.")

        appointment = details.appointment
        ensure_transition(appointment_id, appointment.status, AppointmentStatus.cancelled)

        applied = await call_primary(
            self._appointments.update_status(
                appointment_id, AppointmentStatus.cancelled, expected_status=appointment.status
            ),
            timeout,
            "cancel appointment",
        )
        if not applied:
            await self._raise_conflict(appointment_id, timeout)

        self._logger.info(
            "Appointment cancelled",
            extra={"appointment_id": appointment_id, "professional_id": appointment.professional_id},
        )
        return await asyncio.shield(self._notify_waitlist(details, timeout, now))

    async def _raise_conflict(self, appointment_id: str, timeout: float | None) -> None:
        current = await call_primary(
            self._appointments.get_details(appointment_id), timeout, "reload appointment"
        )
        if current is None:
            raise NotFound(f"Appointment {appointment_id} not found.")
        status = current.appointment.status
        if status in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Appointment {appointment_id} cannot move from '{status.value}' to 'cancelled'."
            )
        raise PersistenceError(f"Appointment {appointment_id} was modified concurrently.")

    async def _notify_waitlist(
        self,
        details: AppointmentDetails,
        timeout: float | None,
        now: datetime,
    ) -> WorkflowResult:
        appointment = details.appointment
        local_day = appointment.start_time.astimezone(self._timezone).date()

        entries, reason = await attempt(
            self._waitlist.list_unnotified(appointment.professional_id, local_day), timeout
        )
        if reason is not None:
            self._logger.warning(
                "Waitlist lookup failed",
                extra={"appointment_id": appointment.id, "step": "waitlist", "reason": reason},
            )
            return WorkflowResult(
                message="Appointment cancelled. Waitlist could not be checked.",
                steps=(StepOutcome.failed("waitlist", reason),),
            )
        if not entries:
            return WorkflowResult(
                message=NO_WAITLIST_MESSAGE,
                steps=(StepOutcome.skipped("waitlist", "no one to notify"),),
            )

        user_ids = list(dict.fromkeys(e.client_user_id for e in entries))
        contacts, reason = await attempt(self._directory.lookup(user_ids), timeout)
        if reason is not None:
            # Entries stay unnotified so a later run can still reach them.
            self._logger.warning(
                "Contact lookup failed",
                extra={"appointment_id": appointment.id, "step": "contacts", "reason": reason},
            )
            return WorkflowResult(
                message="Appointment cancelled. Waitlisted clients could not be resolved.",
                steps=(StepOutcome.failed("contacts", reason),),
            )
        phones = _distinct_phones(user_ids, contacts or {})

        professional_name = details.professional_name or next(
            (e.professional_name for e in entries if e.professional_name), None
        )
        message = build_waitlist_message(local_day, professional_name)

        results = await asyncio.gather(
            *(attempt(self._messaging.send(phone, message), timeout) for phone in phones)
        )
        failed = 0
        for result, reason in results:
            if result is not None and result.success:
                continue
            failed += 1
            self._logger.warning(
                "Waitlist notification failed",
                extra={
                    "appointment_id": appointment.id,
                    "step": "dispatch",
                    "reason": reason or (result.error if result else None),
                },
            )

        mark_step = await run_step(
            "mark_notified",
            self._mark_notified([e.id for e in entries], now),
            timeout,
            appointment.id,
        )

        self._logger.info(
            "Waitlist notified",
            extra={"appointment_id": appointment.id, "count": len(phones)},
        )
        return WorkflowResult(
            message=f"Appointment cancelled. {len(phones)} client(s) notified.",
            steps=(
                StepOutcome.succeeded("contacts", requested=len(user_ids), resolved=len(phones)),
                StepOutcome(
                    name="dispatch",
                    status="failed" if failed else "ok",
                    reason=f"{failed} of {len(phones)} messages failed" if failed else None,
                    detail={"attempted": len(phones), "delivered": len(phones) - failed},
                ),
                mark_step,
            ),
            notified_count=len(phones),
        )

    async def _mark_notified(self, entry_ids: list[str], now: datetime) -> StepOutcome:
        marked = await self._waitlist.mark_notified(entry_ids, now)
        return StepOutcome.succeeded("mark_notified", marked=marked)


def _distinct_phones(user_ids: list[str], contacts: dict[str, Contact]) -> list[str]:
    phones: list[str] = []
    for user_id in user_ids:
        contact = contacts.get(user_id)
        if contact and contact.phone and contact.phone not in phones:
            phones.append(contact.phone)
    return phones

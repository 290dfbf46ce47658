from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.ports.messaging import MessagingPort
from appointment_engine.application.utils.bounded import attempt, call_primary, run_step
from appointment_engine.domain.entities.appointment import AppointmentDetails
from appointment_engine.domain.entities.workflow_result import StepOutcome, WorkflowResult


def build_reminder_message(details: AppointmentDetails, tz: ZoneInfo) -> str:
    start = details.appointment.start_time.astimezone(tz)
    client_name = details.client.name if details.client else ""
    services = details.service_label or "your appointment"
    with_whom = f" with {details.professional_name}" if details.professional_name else ""
    return (
        f"Hi, {client_name}! Just a reminder of your {services}{with_whom} "
        f"tomorrow, {start.strftime('%d/%m')} at {start.strftime('%H:%M')}. See you soon!"
    )


class SendRemindersUseCase:
    """Periodic sweep: remind clients of confirmed appointments starting in the lead window."""

    def __init__(
        self,
        appointments: AppointmentStorePort,
        messaging: MessagingPort,
        timezone: ZoneInfo,
        lead_hours: int = 24,
        window_hours: int = 1,
        timeout: float | None = None,
    ) -> None:
        self._appointments = appointments
        self._messaging = messaging
        self._timezone = timezone
        self._lead = timedelta(hours=lead_hours)
        self._window = timedelta(hours=window_hours)
        self._timeout = timeout
        self._logger = logging.getLogger(__name__)

    async def execute(self, now: datetime | None = None, timeout: float | None = None) -> WorkflowResult:
        timeout = timeout if timeout is not None else self._timeout
        now = now or datetime.now(timezone.utc)
        window_start = now + self._lead
        window_end = window_start + self._window

        candidates = await call_primary(
            self._appointments.list_reminder_candidates(window_start, window_end),
            timeout,
            "load appointments due for a reminder",
        )
        due = [c for c in candidates if c.client and c.client.phone]
        if not due:
            return WorkflowResult(message="No reminders to send right now.")

        results = await asyncio.gather(
            *(
                attempt(self._messaging.send(d.client.phone, build_reminder_message(d, self._timezone)), timeout)
                for d in due
            )
        )
        failed = 0
        for details, (result, reason) in zip(due, results):
            if result is not None and result.success:
                continue
            failed += 1
            self._logger.warning(
                "Reminder dispatch failed",
                extra={
                    "appointment_id": details.appointment.id,
                    "step": "dispatch",
                    "reason": reason or (result.error if result else None),
                },
            )

        mark_step = await run_step(
            "mark_reminded",
            self._mark_sent([d.appointment.id for d in due], now),
            timeout,
        )

        self._logger.info("Reminders processed", extra={"count": len(due)})
        return WorkflowResult(
            message=f"Processed {len(due)} reminder(s).",
            steps=(
                StepOutcome(
                    name="dispatch",
                    status="failed" if failed else "ok",
                    reason=f"{failed} of {len(due)} messages failed" if failed else None,
                    detail={"attempted": len(due), "delivered": len(due) - failed},
                ),
                mark_step,
            ),
            notified_count=len(due),
        )

    async def _mark_sent(self, appointment_ids: list[str], now: datetime) -> StepOutcome:
        await self._appointments.mark_reminders_sent(appointment_ids, now)
        return StepOutcome.succeeded("mark_reminded", marked=len(appointment_ids))

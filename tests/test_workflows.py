"""
Confirmation, the reminder sweep and the waitlist sign-up.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from appointment_engine.application.exceptions import InvalidTransition, NotFound
from appointment_engine.application.use_cases.confirm_appointment import ConfirmAppointmentUseCase
from appointment_engine.application.use_cases.join_waitlist import JoinWaitlistUseCase
from appointment_engine.application.use_cases.send_reminders import SendRemindersUseCase, build_reminder_message
from appointment_engine.application.utils.lifecycle import can_transition
from appointment_engine.domain.entities.appointment import AppointmentStatus, ClientInfo
from appointment_engine.infrastructure.messaging.mock_messaging import MockMessaging

# apt_1 starts 2026-03-10 13:00 UTC, so this puts it inside the 24h+1h window.
SWEEP_AT = datetime(2026, 3, 9, 12, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (AppointmentStatus.pending, AppointmentStatus.confirmed, True),
        (AppointmentStatus.pending, AppointmentStatus.cancelled, True),
        (AppointmentStatus.pending, AppointmentStatus.done, False),
        (AppointmentStatus.confirmed, AppointmentStatus.done, True),
        (AppointmentStatus.confirmed, AppointmentStatus.cancelled, True),
        (AppointmentStatus.done, AppointmentStatus.cancelled, False),
        (AppointmentStatus.cancelled, AppointmentStatus.confirmed, False),
    ],
)
def test_lifecycle_transitions(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_confirm_pending_appointment(store):
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], status=AppointmentStatus.pending)
    use_case = ConfirmAppointmentUseCase(appointments=store)

    result = asyncio.run(use_case.execute("apt_1"))
    again = asyncio.run(use_case.execute("apt_1"))

    assert not result.already_applied
    assert again.already_applied
    assert store.appointments["apt_1"].status == AppointmentStatus.confirmed


def test_confirm_rejects_terminal_appointments(store):
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], status=AppointmentStatus.cancelled)

    with pytest.raises(InvalidTransition):
        asyncio.run(ConfirmAppointmentUseCase(appointments=store).execute("apt_1"))
    with pytest.raises(NotFound):
        asyncio.run(ConfirmAppointmentUseCase(appointments=store).execute("missing"))


def test_reminder_message(store, tz):
    details = asyncio.run(store.get_details("apt_1"))

    assert build_reminder_message(details, tz) == (
        "Hi, Ana! Just a reminder of your Haircut with Rafael tomorrow, 10/03 at 10:00. See you soon!"
    )


def test_reminders_are_sent_once(store, messaging, tz):
    use_case = SendRemindersUseCase(appointments=store, messaging=messaging, timezone=tz)

    first = asyncio.run(use_case.execute(now=SWEEP_AT))
    second = asyncio.run(use_case.execute(now=SWEEP_AT + timedelta(minutes=10)))

    assert first.notified_count == 1
    assert first.message == "Processed 1 reminder(s)."
    assert messaging.sent[0][0] == "5511999990001"
    assert store.appointments["apt_1"].reminder_sent_at == SWEEP_AT
    assert second.message == "No reminders to send right now."
    assert len(messaging.sent) == 1


def test_reminders_skip_outside_window_and_unconfirmed(store, messaging, tz):
    use_case = SendRemindersUseCase(appointments=store, messaging=messaging, timezone=tz)

    asyncio.run(use_case.execute(now=SWEEP_AT - timedelta(hours=2)))
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], status=AppointmentStatus.pending)
    asyncio.run(use_case.execute(now=SWEEP_AT))

    assert messaging.sent == []
    assert store.appointments["apt_1"].reminder_sent_at is None


def test_reminders_skip_clients_without_phone(store, messaging, tz):
    store.add_client(ClientInfo(id="client_1", name="Ana", email="ana@example.com"))

    result = asyncio.run(
        SendRemindersUseCase(appointments=store, messaging=messaging, timezone=tz).execute(now=SWEEP_AT)
    )

    assert result.notified_count == 0
    assert messaging.sent == []


def test_reminder_delivery_failure_is_reported(store, tz):
    class Down(MockMessaging):
        async def send(self, to, message):
            raise ConnectionError("gateway down")

    result = asyncio.run(
        SendRemindersUseCase(appointments=store, messaging=Down(), timezone=tz).execute(now=SWEEP_AT)
    )

    assert result.step("dispatch").status == "failed"
    assert result.step("mark_reminded").ok
    assert store.appointments["apt_1"].reminder_sent_at == SWEEP_AT


def test_join_waitlist_is_idempotent(store, day):
    use_case = JoinWaitlistUseCase(waitlist=store)

    first = asyncio.run(use_case.execute("owner_1", "barber_1", day, "user_a"))
    second = asyncio.run(use_case.execute("owner_1", "barber_1", day, "user_a"))

    assert first.id == second.id
    assert first.professional_name == "Rafael"
    assert first.notified_at is None
    assert len(store.waitlist) == 1


def test_join_waitlist_requires_ids(store, day):
    with pytest.raises(ValueError):
        asyncio.run(JoinWaitlistUseCase(waitlist=store).execute("owner_1", "", day, "user_a"))

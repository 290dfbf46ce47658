from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Iterable

from appointment_engine.application.ports.account_directory import AccountDirectoryPort
from appointment_engine.application.ports.appointment_store import AppointmentStorePort
from appointment_engine.application.ports.ledger import LedgerPort
from appointment_engine.application.ports.loyalty import LoyaltyPort
from appointment_engine.application.ports.referral_store import ReferralStorePort
from appointment_engine.application.ports.schedule_store import ScheduleStorePort
from appointment_engine.application.ports.waitlist_store import WaitlistStorePort
from appointment_engine.domain.entities.appointment import (
    Appointment,
    AppointmentDetails,
    AppointmentStatus,
    ClientInfo,
    ServiceInfo,
)
from appointment_engine.domain.entities.ledger import LedgerEntry
from appointment_engine.domain.entities.loyalty import LoyaltyCounter
from appointment_engine.domain.entities.referral import Referral, ReferralStatus
from appointment_engine.domain.entities.waitlist import Contact, WaitlistEntry
from appointment_engine.domain.entities.working_hours import WorkingHours


class MemoryDatastore(
    AppointmentStorePort,
    ScheduleStorePort,
    LedgerPort,
    LoyaltyPort,
    ReferralStorePort,
    WaitlistStorePort,
    AccountDirectoryPort,
):
    """
    Single-process datastore for dev and tests.

    Every method does its check-and-write without awaiting in between, so on
    one event loop each call is atomic, the same guarantee the conditional
    writes give against the real backend.
    """

    def __init__(self) -> None:
        self.appointments: dict[str, Appointment] = {}
        self.services: dict[str, ServiceInfo] = {}
        self.clients: dict[str, ClientInfo] = {}
        self.professionals: dict[str, tuple[str, WorkingHours]] = {}
        self.ledger: list[LedgerEntry] = []
        self.loyalty: dict[tuple[str, str], int] = {}
        self.referrals: dict[str, Referral] = {}
        self.waitlist: dict[str, WaitlistEntry] = {}
        self.accounts: dict[str, Contact] = {}

    # Seeding helpers

    def add_professional(self, professional_id: str, name: str, working_hours: WorkingHours) -> None:
        self.professionals[professional_id] = (name, working_hours)

    def add_service(self, service: ServiceInfo) -> None:
        self.services[service.id] = service

    def add_client(self, client: ClientInfo) -> None:
        self.clients[client.id] = client

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments[appointment.id] = appointment

    def add_referral(self, referral: Referral) -> None:
        self.referrals[referral.id] = referral

    def add_waitlist_entry(self, entry: WaitlistEntry) -> None:
        self.waitlist[entry.id] = entry

    def add_account(self, user_id: str, contact: Contact) -> None:
        self.accounts[user_id] = contact

    # AppointmentStorePort

    async def get_details(self, appointment_id: str) -> AppointmentDetails | None:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            return None
        return self._details(appointment)

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        appointment = self.appointments.get(appointment_id)
        if appointment is None or appointment.status == status:
            return False
        if expected_status is not None and appointment.status != expected_status:
            return False
        self.appointments[appointment_id] = replace(appointment, status=status)
        return True

    async def list_for_professional(
        self,
        professional_id: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        wanted = set(statuses)
        found = [
            a
            for a in self.appointments.values()
            if a.professional_id == professional_id and a.status in wanted and start <= a.start_time < end
        ]
        return sorted(found, key=lambda a: a.start_time)

    async def count_for_client(self, client_id: str, status: AppointmentStatus) -> int:
        return sum(1 for a in self.appointments.values() if a.client_id == client_id and a.status == status)

    async def list_reminder_candidates(self, start: datetime, end: datetime) -> list[AppointmentDetails]:
        found = [
            a
            for a in self.appointments.values()
            if a.status == AppointmentStatus.confirmed
            and a.reminder_sent_at is None
            and start <= a.start_time < end
        ]
        return [self._details(a) for a in sorted(found, key=lambda a: a.start_time)]

    async def mark_reminders_sent(self, appointment_ids: list[str], sent_at: datetime) -> None:
        for appointment_id in appointment_ids:
            appointment = self.appointments.get(appointment_id)
            if appointment is not None and appointment.reminder_sent_at is None:
                self.appointments[appointment_id] = replace(appointment, reminder_sent_at=sent_at)

    # ScheduleStorePort

    async def get_working_hours(self, professional_id: str) -> WorkingHours | None:
        professional = self.professionals.get(professional_id)
        return professional[1] if professional else None

    async def get_services(self, service_ids: list[str]) -> list[ServiceInfo]:
        return [self.services[s] for s in service_ids if s in self.services]

    # LedgerPort

    async def insert(self, entry: LedgerEntry) -> LedgerEntry:
        stored = replace(entry, id=f"ledger_{len(self.ledger) + 1}")
        self.ledger.append(stored)
        return stored

    # LoyaltyPort

    async def increment(self, owner_id: str, client_id: str) -> LoyaltyCounter:
        key = (owner_id, client_id)
        self.loyalty[key] = self.loyalty.get(key, 0) + 1
        return LoyaltyCounter(owner_id=owner_id, client_id=client_id, count=self.loyalty[key])

    # ReferralStorePort

    async def find_pending(self, owner_id: str, referred_email: str) -> Referral | None:
        for referral in self.referrals.values():
            if (
                referral.owner_id == owner_id
                and referral.referred_email == referred_email
                and referral.status == ReferralStatus.pending
            ):
                return referral
        return None

    async def complete(self, referral_id: str, client_id: str) -> bool:
        referral = self.referrals.get(referral_id)
        if referral is None or referral.status != ReferralStatus.pending:
            return False
        self.referrals[referral_id] = replace(
            referral, status=ReferralStatus.completed, referred_client_id=client_id
        )
        return True

    # WaitlistStorePort

    async def list_unnotified(self, professional_id: str, day: date) -> list[WaitlistEntry]:
        return [
            e
            for e in self.waitlist.values()
            if e.professional_id == professional_id and e.date == day and e.notified_at is None
        ]

    async def mark_notified(self, entry_ids: list[str], notified_at: datetime) -> int:
        marked = 0
        for entry_id in entry_ids:
            entry = self.waitlist.get(entry_id)
            if entry is not None and entry.notified_at is None:
                self.waitlist[entry_id] = replace(entry, notified_at=notified_at)
                marked += 1
        return marked

    async def get_or_create(
        self,
        owner_id: str,
        professional_id: str,
        day: date,
        client_user_id: str,
    ) -> WaitlistEntry:
        for entry in self.waitlist.values():
            if (
                entry.professional_id == professional_id
                and entry.date == day
                and entry.client_user_id == client_user_id
            ):
                return entry
        name = self.professionals.get(professional_id, (None, None))[0]
        entry = WaitlistEntry(
            id=f"waitlist_{len(self.waitlist) + 1}",
            owner_id=owner_id,
            professional_id=professional_id,
            date=day,
            client_user_id=client_user_id,
            professional_name=name,
        )
        self.waitlist[entry.id] = entry
        return entry

    # AccountDirectoryPort

    async def lookup(self, user_ids: list[str]) -> dict[str, Contact]:
        return {u: self.accounts[u] for u in user_ids if u in self.accounts}

    def _details(self, appointment: Appointment) -> AppointmentDetails:
        services = tuple(self.services[s] for s in appointment.service_ids if s in self.services)
        client = self.clients.get(appointment.client_id) if appointment.client_id else None
        professional = self.professionals.get(appointment.professional_id)
        return AppointmentDetails(
            appointment=appointment,
            services=services,
            client=client,
            professional_name=professional[0] if professional else None,
        )

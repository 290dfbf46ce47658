from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from appointment_engine.application.exceptions import PersistenceError
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
from appointment_engine.domain.entities.ledger import LedgerEntry, LedgerEntryType
from appointment_engine.domain.entities.loyalty import LoyaltyCounter
from appointment_engine.domain.entities.referral import Referral, ReferralStatus
from appointment_engine.domain.entities.waitlist import WaitlistEntry
from appointment_engine.domain.entities.working_hours import WorkingHours
from appointment_engine.infrastructure.supabase.rest_client import SupabaseRestClient, in_filter

# Column values used by the hosted schema.
STATUS_TO_DB = {
    AppointmentStatus.pending: "pendente",
    AppointmentStatus.confirmed: "confirmado",
    AppointmentStatus.done: "concluido",
    AppointmentStatus.cancelled: "cancelado",
}
STATUS_FROM_DB = {v: k for k, v in STATUS_TO_DB.items()}

LEDGER_TYPE_TO_DB = {LedgerEntryType.inflow: "entrada", LedgerEntryType.outflow: "saida"}

APPOINTMENT_COLUMNS = (
    "id,user_id,barbeiro_id,cliente_id,servico_id,start_time,end_time,status,reminder_sent_at,sede_id"
)
DETAILS_SELECT = (
    f"{APPOINTMENT_COLUMNS},"
    "servicos(id,name,price,duration_minutes),"
    "clientes(id,name,email,phone),"
    "barbeiros(name)"
)


class SupabaseDatastore(
    AppointmentStorePort,
    ScheduleStorePort,
    LedgerPort,
    LoyaltyPort,
    ReferralStorePort,
    WaitlistStorePort,
):
    def __init__(self, rest: SupabaseRestClient) -> None:
        self._rest = rest

    # AppointmentStorePort

    async def get_details(self, appointment_id: str) -> AppointmentDetails | None:
        rows = await self._rest.select(
            "agendamentos",
            [("select", DETAILS_SELECT), ("id", f"eq.{appointment_id}"), ("limit", "1")],
        )
        return _details_from_row(rows[0]) if rows else None

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        params = [("id", f"eq.{appointment_id}")]
        if expected_status is not None:
            params.append(("status", f"eq.{STATUS_TO_DB[expected_status]}"))
        else:
            params.append(("status", f"neq.{STATUS_TO_DB[status]}"))
        changed = await self._rest.update("agendamentos", params, {"status": STATUS_TO_DB[status]})
        return len(changed) > 0

    async def list_for_professional(
        self,
        professional_id: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        rows = await self._rest.select(
            "agendamentos",
            [
                ("select", APPOINTMENT_COLUMNS),
                ("barbeiro_id", f"eq.{professional_id}"),
                ("start_time", f"gte.{start.isoformat()}"),
                ("start_time", f"lt.{end.isoformat()}"),
                ("status", in_filter(STATUS_TO_DB[s] for s in statuses)),
                ("order", "start_time.asc"),
            ],
        )
        return [_appointment_from_row(r) for r in rows]

    async def count_for_client(self, client_id: str, status: AppointmentStatus) -> int:
        return await self._rest.count(
            "agendamentos",
            [("cliente_id", f"eq.{client_id}"), ("status", f"eq.{STATUS_TO_DB[status]}")],
        )

    async def list_reminder_candidates(self, start: datetime, end: datetime) -> list[AppointmentDetails]:
        rows = await self._rest.select(
            "agendamentos",
            [
                ("select", DETAILS_SELECT),
                ("status", f"eq.{STATUS_TO_DB[AppointmentStatus.confirmed]}"),
                ("reminder_sent_at", "is.null"),
                ("start_time", f"gte.{start.isoformat()}"),
                ("start_time", f"lt.{end.isoformat()}"),
            ],
        )
        return [_details_from_row(r) for r in rows]

    async def mark_reminders_sent(self, appointment_ids: list[str], sent_at: datetime) -> None:
        if not appointment_ids:
            return
        await self._rest.update(
            "agendamentos",
            [("id", in_filter(appointment_ids)), ("reminder_sent_at", "is.null")],
            {"reminder_sent_at": sent_at.isoformat()},
        )

    # ScheduleStorePort

    async def get_working_hours(self, professional_id: str) -> WorkingHours | None:
        rows = await self._rest.select(
            "barbeiros",
            [("select", "working_hours"), ("id", f"eq.{professional_id}"), ("limit", "1")],
        )
        if not rows:
            return None
        return WorkingHours.from_payload(rows[0].get("working_hours"))

    async def get_services(self, service_ids: list[str]) -> list[ServiceInfo]:
        if not service_ids:
            return []
        rows = await self._rest.select(
            "servicos",
            [("select", "id,name,price,duration_minutes"), ("id", in_filter(service_ids))],
        )
        return [_service_from_row(r) for r in rows]

    # LedgerPort

    async def insert(self, entry: LedgerEntry) -> LedgerEntry:
        row = await self._rest.insert(
            "financeiro",
            {
                "user_id": entry.owner_id,
                "agendamento_id": entry.appointment_id,
                "tipo": LEDGER_TYPE_TO_DB[entry.type],
                "valor": str(entry.amount),
                "descricao": entry.description,
                "sede_id": entry.location_id,
            },
        )
        return LedgerEntry(
            id=str(row.get("id")),
            owner_id=entry.owner_id,
            location_id=entry.location_id,
            type=entry.type,
            amount=entry.amount,
            description=entry.description,
            appointment_id=entry.appointment_id,
            created_at=_parse_datetime(row.get("created_at")) or entry.created_at,
        )

    # LoyaltyPort

    async def increment(self, owner_id: str, client_id: str) -> LoyaltyCounter:
        result = await self._rest.rpc(
            "increment_loyalty_count",
            {"p_user_id": owner_id, "p_cliente_id": client_id},
        )
        return LoyaltyCounter(owner_id=owner_id, client_id=client_id, count=_loyalty_count(result))

    # ReferralStorePort

    async def find_pending(self, owner_id: str, referred_email: str) -> Referral | None:
        rows = await self._rest.select(
            "referrals",
            [
                ("select", "id,referred_email,owner_user_id,status,referred_client_id"),
                ("referred_email", f"eq.{referred_email}"),
                ("owner_user_id", f"eq.{owner_id}"),
                ("status", f"eq.{ReferralStatus.pending.value}"),
                ("limit", "1"),
            ],
        )
        if not rows:
            return None
        row = rows[0]
        return Referral(
            id=str(row["id"]),
            referred_email=row.get("referred_email") or referred_email,
            owner_id=row.get("owner_user_id") or owner_id,
            status=ReferralStatus(row.get("status") or ReferralStatus.pending.value),
            referred_client_id=row.get("referred_client_id"),
        )

    async def complete(self, referral_id: str, client_id: str) -> bool:
        changed = await self._rest.update(
            "referrals",
            [("id", f"eq.{referral_id}"), ("status", f"eq.{ReferralStatus.pending.value}")],
            {"status": ReferralStatus.completed.value, "referred_client_id": client_id},
        )
        return len(changed) > 0

    # WaitlistStorePort

    async def list_unnotified(self, professional_id: str, day: date) -> list[WaitlistEntry]:
        rows = await self._rest.select(
            "lista_espera",
            [
                ("select", "id,owner_user_id,barbeiro_id,data,client_user_id,notificado_em,barbeiros(name)"),
                ("barbeiro_id", f"eq.{professional_id}"),
                ("data", f"eq.{day.isoformat()}"),
                ("notificado_em", "is.null"),
            ],
        )
        return [_waitlist_from_row(r) for r in rows]

    async def mark_notified(self, entry_ids: list[str], notified_at: datetime) -> int:
        if not entry_ids:
            return 0
        changed = await self._rest.update(
            "lista_espera",
            [("id", in_filter(entry_ids)), ("notificado_em", "is.null")],
            {"notificado_em": notified_at.isoformat()},
        )
        return len(changed)

    async def get_or_create(
        self,
        owner_id: str,
        professional_id: str,
        day: date,
        client_user_id: str,
    ) -> WaitlistEntry:
        rows = await self._rest.select(
            "lista_espera",
            [
                ("select", "id,owner_user_id,barbeiro_id,data,client_user_id,notificado_em"),
                ("barbeiro_id", f"eq.{professional_id}"),
                ("data", f"eq.{day.isoformat()}"),
                ("client_user_id", f"eq.{client_user_id}"),
                ("limit", "1"),
            ],
        )
        if rows:
            return _waitlist_from_row(rows[0])
        row = await self._rest.insert(
            "lista_espera",
            {
                "owner_user_id": owner_id,
                "client_user_id": client_user_id,
                "barbeiro_id": professional_id,
                "data": day.isoformat(),
            },
        )
        return _waitlist_from_row(row)


def _appointment_from_row(row: dict[str, Any]) -> Appointment:
    status = STATUS_FROM_DB.get(row.get("status") or "")
    if status is None:
        raise PersistenceError(f"Unknown appointment status {row.get('status')!r}")
    service_ids = row.get("servico_ids") or ([row["servico_id"]] if row.get("servico_id") else [])
    return Appointment(
        id=str(row["id"]),
        owner_id=str(row.get("user_id") or ""),
        professional_id=str(row.get("barbeiro_id") or ""),
        client_id=row.get("cliente_id"),
        service_ids=tuple(str(s) for s in service_ids),
        start_time=_parse_datetime(row.get("start_time")),
        end_time=_parse_datetime(row.get("end_time")),
        status=status,
        reminder_sent_at=_parse_datetime(row.get("reminder_sent_at")),
        location_id=row.get("sede_id"),
    )


def _details_from_row(row: dict[str, Any]) -> AppointmentDetails:
    embedded_services = row.get("servicos")
    if isinstance(embedded_services, dict):
        embedded_services = [embedded_services]
    client = row.get("clientes")
    professional = row.get("barbeiros") or {}
    return AppointmentDetails(
        appointment=_appointment_from_row(row),
        services=tuple(_service_from_row(s) for s in (embedded_services or [])),
        client=(
            ClientInfo(
                id=str(client["id"]),
                name=client.get("name") or "",
                email=client.get("email"),
                phone=client.get("phone"),
            )
            if client
            else None
        ),
        professional_name=professional.get("name"),
    )


def _service_from_row(row: dict[str, Any]) -> ServiceInfo:
    try:
        price = Decimal(str(row.get("price") or 0))
    except InvalidOperation:
        price = Decimal("0")
    duration = row.get("duration_minutes")
    return ServiceInfo(
        id=str(row.get("id") or ""),
        name=row.get("name") or "",
        price=price,
        duration_minutes=int(duration) if duration else None,
    )


def _waitlist_from_row(row: dict[str, Any]) -> WaitlistEntry:
    professional = row.get("barbeiros") or {}
    return WaitlistEntry(
        id=str(row["id"]),
        owner_id=str(row.get("owner_user_id") or ""),
        professional_id=str(row.get("barbeiro_id") or ""),
        date=date.fromisoformat(row["data"]),
        client_user_id=str(row.get("client_user_id") or ""),
        notified_at=_parse_datetime(row.get("notificado_em")),
        professional_name=professional.get("name"),
    )


def _loyalty_count(result: Any) -> int:
    if isinstance(result, int):
        return result
    if isinstance(result, list) and result:
        result = result[0]
    if isinstance(result, dict):
        value = result.get("current_count")
        if isinstance(value, int):
            return value
    return 0


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None

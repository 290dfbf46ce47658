from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from appointment_engine.domain.entities.appointment import Appointment, AppointmentStatus, ClientInfo, ServiceInfo
from appointment_engine.domain.entities.working_hours import WorkingHours
from appointment_engine.infrastructure.messaging.mock_messaging import MockMessaging
from appointment_engine.infrastructure.store.memory_store import MemoryDatastore

TZ = ZoneInfo("America/Sao_Paulo")
DAY = date(2026, 3, 10)  # Tuesday


@pytest.fixture
def tz() -> ZoneInfo:
    return TZ


@pytest.fixture
def day() -> date:
    return DAY


@pytest.fixture
def at():
    def _at(hour: int, minute: int = 0, on: date = DAY) -> datetime:
        return datetime.combine(on, time(hour, minute), tzinfo=TZ)

    return _at


@pytest.fixture
def store(at) -> MemoryDatastore:
    """One barber working 09:00-12:00 on Tuesdays and one confirmed haircut at 10:00."""
    store = MemoryDatastore()
    store.add_professional(
        "barber_1",
        "Rafael",
        WorkingHours.from_payload({"tuesday": {"active": True, "start": "09:00", "end": "12:00", "breaks": []}}),
    )
    store.add_service(ServiceInfo(id="svc_cut", name="Haircut", price=Decimal("50.00"), duration_minutes=30))
    store.add_service(ServiceInfo(id="svc_beard", name="Beard", price=Decimal("30.00"), duration_minutes=20))
    store.add_client(ClientInfo(id="client_1", name="Ana", email="ana@example.com", phone="5511999990001"))
    store.add_appointment(
        Appointment(
            id="apt_1",
            owner_id="owner_1",
            professional_id="barber_1",
            client_id="client_1",
            service_ids=("svc_cut",),
            start_time=at(10),
            end_time=at(10, 30),
            status=AppointmentStatus.confirmed,
            location_id="sede_1",
        )
    )
    return store


@pytest.fixture
def messaging() -> MockMessaging:
    return MockMessaging()

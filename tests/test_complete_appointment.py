import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest

from appointment_engine.application.exceptions import IntegrityError, InvalidTransition, NotFound, PersistenceError
from appointment_engine.application.use_cases.complete_appointment import (
    ALREADY_COMPLETED_MESSAGE,
    COMPLETED_MESSAGE,
    CompleteAppointmentUseCase,
)
from appointment_engine.domain.entities.appointment import AppointmentStatus
from appointment_engine.domain.entities.ledger import LedgerEntryType
from appointment_engine.domain.entities.loyalty import LoyaltyProgram
from appointment_engine.domain.entities.referral import Referral, ReferralStatus
from appointment_engine.infrastructure.store.memory_store import MemoryDatastore

PROGRAM = LoyaltyProgram.from_thresholds({"Bronze": 0, "Prata": 5, "Ouro": 15}, reward_target=10)


def _use_case(store, **overrides) -> CompleteAppointmentUseCase:
    kwargs = dict(
        appointments=store,
        ledger=store,
        loyalty=store,
        referrals=store,
        loyalty_program=PROGRAM,
        timeout=1.0,
    )
    kwargs.update(overrides)
    return CompleteAppointmentUseCase(**kwargs)


def test_complete_creates_ledger_entry_and_loyalty(store):
    """Confirmed haircut for Ana: one inflow of 50.00 and her first loyalty visit."""
    result = asyncio.run(_use_case(store).execute("apt_1"))

    assert result.message == COMPLETED_MESSAGE
    assert not result.already_applied
    assert store.appointments["apt_1"].status == AppointmentStatus.done

    assert len(store.ledger) == 1
    entry = store.ledger[0]
    assert entry.type == LedgerEntryType.inflow
    assert entry.amount == Decimal("50.00")
    assert entry.description == "Haircut — Ana"
    assert entry.owner_id == "owner_1"
    assert entry.location_id == "sede_1"
    assert entry.appointment_id == "apt_1"

    assert store.loyalty[("owner_1", "client_1")] == 1
    loyalty = result.step("loyalty")
    assert loyalty.ok
    assert loyalty.detail == {"count": 1, "tier": "Bronze", "next_tier_at": 5}
    assert result.step("ledger").detail["amount"] == "50.00"
    assert result.step("referral").status == "skipped"


def test_multi_service_appointment_sums_prices(store):
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], service_ids=("svc_cut", "svc_beard"))

    asyncio.run(_use_case(store).execute("apt_1"))

    assert store.ledger[0].amount == Decimal("80.00")
    assert store.ledger[0].description == "Haircut + Beard — Ana"


def test_second_completion_is_idempotent(store):
    use_case = _use_case(store)

    asyncio.run(use_case.execute("apt_1"))
    again = asyncio.run(use_case.execute("apt_1"))

    assert again.already_applied
    assert again.message == ALREADY_COMPLETED_MESSAGE
    assert again.steps == ()
    assert len(store.ledger) == 1
    assert store.loyalty[("owner_1", "client_1")] == 1


def test_concurrent_completions_bill_once(store):
    use_case = _use_case(store)

    async def both():
        return await asyncio.gather(use_case.execute("apt_1"), use_case.execute("apt_1"))

    results = asyncio.run(both())

    assert sorted(r.already_applied for r in results) == [False, True]
    assert len(store.ledger) == 1
    assert store.loyalty[("owner_1", "client_1")] == 1


def test_missing_client_is_rejected_before_any_write(store):
    del store.clients["client_1"]

    with pytest.raises(IntegrityError):
        asyncio.run(_use_case(store).execute("apt_1"))

    assert store.appointments["apt_1"].status == AppointmentStatus.confirmed
    assert store.ledger == []


def test_missing_services_are_rejected_before_any_write(store):
    store.services.clear()

    with pytest.raises(IntegrityError):
        asyncio.run(_use_case(store).execute("apt_1"))

    assert store.appointments["apt_1"].status == AppointmentStatus.confirmed
    assert store.ledger == []


def test_partially_missing_services_are_rejected_before_any_write(store):
    """One of two services was deleted: billing only the remaining one would undercharge."""
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], service_ids=("svc_cut", "svc_deleted"))

    with pytest.raises(IntegrityError):
        asyncio.run(_use_case(store).execute("apt_1"))

    assert store.appointments["apt_1"].status == AppointmentStatus.confirmed
    assert store.ledger == []
    assert store.loyalty == {}


def test_unknown_appointment(store):
    with pytest.raises(NotFound):
        asyncio.run(_use_case(store).execute("missing"))


@pytest.mark.parametrize("status", [AppointmentStatus.pending, AppointmentStatus.cancelled])
def test_only_confirmed_appointments_can_complete(store, status):
    store.appointments["apt_1"] = replace(store.appointments["apt_1"], status=status)

    with pytest.raises(InvalidTransition):
        asyncio.run(_use_case(store).execute("apt_1"))

    assert store.appointments["apt_1"].status == status
    assert store.ledger == []


def test_loyalty_failure_does_not_fail_completion(store):
    class NoLoyalty(MemoryDatastore):
        async def increment(self, owner_id, client_id):
            raise RuntimeError("rpc unavailable")

    result = asyncio.run(_use_case(store, loyalty=NoLoyalty()).execute("apt_1"))

    assert result.message == COMPLETED_MESSAGE
    assert len(store.ledger) == 1
    loyalty = result.step("loyalty")
    assert loyalty.status == "failed"
    assert loyalty.reason == "rpc unavailable"


def test_slow_loyalty_is_bounded(store):
    class SlowLoyalty(MemoryDatastore):
        async def increment(self, owner_id, client_id):
            await asyncio.sleep(1)

    result = asyncio.run(_use_case(store, loyalty=SlowLoyalty(), timeout=0.05).execute("apt_1"))

    assert result.step("loyalty").reason == "timeout"
    assert store.appointments["apt_1"].status == AppointmentStatus.done


def test_first_completed_visit_completes_pending_referral(store):
    store.add_referral(Referral(id="ref_1", referred_email="ana@example.com", owner_id="owner_1"))

    result = asyncio.run(_use_case(store).execute("apt_1"))

    referral = store.referrals["ref_1"]
    assert referral.status == ReferralStatus.completed
    assert referral.referred_client_id == "client_1"
    assert result.step("referral").detail == {"referral_id": "ref_1"}


def test_referral_stays_pending_for_returning_clients(store, at):
    store.add_referral(Referral(id="ref_1", referred_email="ana@example.com", owner_id="owner_1"))
    earlier = replace(
        store.appointments["apt_1"],
        id="apt_0",
        start_time=at(9),
        end_time=at(9, 30),
        status=AppointmentStatus.done,
    )
    store.add_appointment(earlier)

    result = asyncio.run(_use_case(store).execute("apt_1"))

    assert store.referrals["ref_1"].status == ReferralStatus.pending
    assert result.step("referral").status == "skipped"


def test_referral_of_another_owner_is_ignored(store):
    store.add_referral(Referral(id="ref_1", referred_email="ana@example.com", owner_id="owner_2"))

    asyncio.run(_use_case(store).execute("apt_1"))

    assert store.referrals["ref_1"].status == ReferralStatus.pending


def test_referral_failure_does_not_fail_completion(store):
    class BrokenReferrals(MemoryDatastore):
        async def find_pending(self, owner_id, referred_email):
            raise ConnectionError("referrals down")

    result = asyncio.run(_use_case(store, referrals=BrokenReferrals()).execute("apt_1"))

    assert result.message == COMPLETED_MESSAGE
    assert result.step("referral").status == "failed"
    assert result.step("loyalty").ok


def test_status_write_failure_is_reported(store):
    class ReadOnly(MemoryDatastore):
        async def update_status(self, appointment_id, status, expected_status=None):
            raise ConnectionError("write rejected")

    read_only = ReadOnly()
    read_only.__dict__.update(store.__dict__)

    with pytest.raises(PersistenceError):
        asyncio.run(_use_case(read_only, ledger=store).execute("apt_1"))

    assert store.ledger == []


def test_ledger_failure_after_commit_is_reported(store):
    class NoLedger(MemoryDatastore):
        async def insert(self, entry):
            raise ConnectionError("ledger down")

    with pytest.raises(PersistenceError):
        asyncio.run(_use_case(store, ledger=NoLedger()).execute("apt_1"))

    assert store.appointments["apt_1"].status == AppointmentStatus.done
    assert store.loyalty == {}


def test_loyalty_program_standing():
    standing = PROGRAM.standing(17)

    assert standing.tier == "Ouro"
    assert standing.next_tier is None
    assert standing.next_tier_at is None
    assert standing.reward_progress == 7
    assert PROGRAM.standing(5).tier == "Prata"
    assert PROGRAM.standing(4).next_tier_at == 5

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from akwanda.core.exceptions import InvalidAmount, NotFoundError, Unauthorized
from akwanda.domain.access_state import AccessState, apply_access_state, current_access_state
from akwanda.models.dues import DuesLedgerEntry
from akwanda.services.dues_service import dues_service
from akwanda.services.settlement_service import settlement_service
from akwanda.utils.dates import as_utc
from tests.factories import (
    actor_for,
    commit,
    ids,
    make_commission_booking,
    make_fine,
    make_property,
    make_user,
)

JAN = datetime(2026, 1, 5, 8, 0, tzinfo=UTC)
NOW = datetime(2026, 3, 20, 10, 0, tzinfo=UTC)


async def _indebted_host(db, blocked: bool = True):
    """Host owing 30k and 20k of commission plus a 10k fine."""
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    older = await make_commission_booking(db, prop, guest, 30_000, created_at=JAN)
    newer = await make_commission_booking(
        db, prop, guest, 20_000, check_in=date(2026, 2, 20), created_at=JAN + timedelta(days=1)
    )
    fine = await make_fine(db, host, 10_000, created_at=JAN - timedelta(days=30))
    if blocked:
        apply_access_state(host, AccessState.BLOCKED, reason="Overdue", now=JAN)
        await db.flush()
    return host, older, newer, fine


async def test_partial_payment_settles_oldest_commission_only(db, sink):
    host, older, newer, fine = await _indebted_host(db)

    result = await settlement_service.settle_payment(db, host.id, 35_000, actor_for(host), now=NOW)

    assert result.total_due_before == 60_000
    assert result.amount_applied == 30_000
    assert result.remaining_due == 30_000
    assert result.fully_cleared is False
    assert result.partial_unlock is True
    assert result.access_state == AccessState.LIMITED_ACCESS
    assert older.commission_paid is True
    assert newer.commission_paid is False
    # Fines wait until every commission is covered, even though this one is older
    assert fine.paid is False
    assert host.total_fines_due == 10_000
    assert current_access_state(host) == AccessState.LIMITED_ACCESS
    await commit(db)
    assert sink.sent_to(host.id, "dues_partial")
    assert not sink.sent_to(host.id, "account_reactivated")


async def test_remaining_due_is_conserved(db, sink):
    host, *_ = await _indebted_host(db)

    first = await settlement_service.settle_payment(db, host.id, 25_000, now=NOW)
    second = await settlement_service.settle_payment(db, host.id, 30_000, now=NOW)

    assert first.amount_applied == 0
    assert first.remaining_due == 60_000
    assert second.total_due_before == first.remaining_due
    assert second.remaining_due == second.total_due_before - second.amount_applied
    assert second.amount_applied == 30_000


async def test_small_payment_keeps_the_host_blocked(db, sink):
    host, *_ = await _indebted_host(db)

    result = await settlement_service.settle_payment(db, host.id, 29_999, now=NOW)

    assert result.access_state == AccessState.BLOCKED
    assert result.partial_unlock is False
    assert host.is_blocked


async def test_full_payment_clears_everything_and_reactivates(db, sink):
    host, older, newer, fine = await _indebted_host(db)

    result = await settlement_service.settle_payment(db, host.id, 70_000, actor_for(host), now=NOW)

    assert result.fully_cleared is True
    assert result.remaining_due == 0
    assert result.amount_applied == 60_000
    assert result.access_state == AccessState.ACTIVE
    assert older.commission_paid and newer.commission_paid
    assert fine.paid is True
    assert as_utc(fine.paid_at) == NOW
    assert host.total_fines_due == 0
    assert host.is_blocked is False
    await commit(db)
    assert sink.sent_to(host.id, "dues_cleared")
    assert sink.sent_to(host.id, "account_reactivated")


async def test_fines_follow_commissions_in_order(db, sink):
    host, _, _, fine = await _indebted_host(db, blocked=False)
    later_fine = await make_fine(db, host, 5_000, created_at=JAN + timedelta(days=3))

    result = await settlement_service.settle_payment(db, host.id, 62_000, now=NOW)

    assert fine.paid is True
    assert later_fine.paid is False
    assert result.amount_applied == 60_000
    assert result.remaining_due == 5_000
    assert host.total_fines_due == 5_000


async def test_unpaid_bookings_come_back_in_fifo_order(db):
    host, older, newer, _ = await _indebted_host(db, blocked=False)

    bookings = await settlement_service.unpaid_commission_bookings(db, host.id)

    assert ids(bookings) == [older.id, newer.id]


async def test_settlement_marks_ledger_rows_paid(db, sink):
    host, older, newer, fine = await _indebted_host(db, blocked=False)
    admin = await make_user(db, "admin")
    await dues_service.run_monthly_aggregation(db, date(2026, 2, 1))

    await settlement_service.settle_payment(db, host.id, 60_000, actor_for(admin), now=NOW)

    result = await db.execute(select(DuesLedgerEntry).where(DuesLedgerEntry.user_id == host.id))
    entries = result.scalars().all()
    assert len(entries) == 1
    assert entries[0].amount == 50_000
    assert entries[0].paid_amount == 50_000
    assert entries[0].status == "paid"
    assert as_utc(entries[0].paid_at) == NOW


async def test_nothing_owed_clears_immediately(db, sink):
    host = await make_user(db, "host")

    result = await settlement_service.settle_payment(db, host.id, 1_000, now=NOW)

    assert result.fully_cleared is True
    assert result.amount_applied == 0
    assert result.total_due_before == 0


async def test_settlement_guards(db, sink):
    host, *_ = await _indebted_host(db)
    stranger = await make_user(db, "host")

    with pytest.raises(InvalidAmount):
        await settlement_service.settle_payment(db, host.id, 0, now=NOW)
    with pytest.raises(InvalidAmount):
        await settlement_service.settle_payment(db, host.id, -10, now=NOW)
    with pytest.raises(Unauthorized):
        await settlement_service.settle_payment(db, host.id, 1_000, actor_for(stranger), now=NOW)
    with pytest.raises(NotFoundError):
        await settlement_service.settle_payment(db, uuid4(), 1_000, now=NOW)

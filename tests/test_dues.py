from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import func, select

from akwanda.core.exceptions import InvalidAmount, Unauthorized
from akwanda.models.dues import DuesLedgerEntry
from akwanda.services.commission_service import commission_service
from akwanda.services.dues_service import dues_service
from tests.factories import (
    actor_for,
    commit,
    make_commission_booking,
    make_property,
    make_user,
)

FEBRUARY = date(2026, 2, 1)
# February rows fall due on the 28th and leave grace on 15 March
WITHIN_GRACE = date(2026, 3, 5)
AFTER_GRACE = datetime(2026, 3, 20, 9, 0, tzinfo=UTC)


async def _host_with_february_commission(db):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    await make_commission_booking(db, prop, guest, 12_000, check_in=date(2026, 2, 3))
    await make_commission_booking(db, prop, guest, 8_000, check_in=date(2026, 2, 17))
    # Outside the period
    await make_commission_booking(db, prop, guest, 5_000, check_in=date(2026, 3, 1))
    # Not owed
    await make_commission_booking(db, prop, guest, 7_000, check_in=date(2026, 2, 5), status="pending")
    return host, guest, prop


async def _ledger_count(db) -> int:
    result = await db.execute(select(func.count()).select_from(DuesLedgerEntry))
    return result.scalar_one()


async def test_monthly_aggregation_is_idempotent(db, sink):
    host, _, _ = await _host_with_february_commission(db)

    first = await dues_service.run_monthly_aggregation(db, FEBRUARY)
    second = await dues_service.run_monthly_aggregation(db, date(2026, 2, 14))

    assert len(first) == 1
    entry = first[0]
    assert second == [entry]
    assert await _ledger_count(db) == 1
    assert entry.user_id == host.id
    assert entry.amount == 20_000
    assert entry.status == "unpaid"
    assert entry.period_start == FEBRUARY
    assert entry.period_end == date(2026, 2, 28)
    assert entry.due_date == date(2026, 2, 28)
    assert entry.grace_end_date == date(2026, 3, 15)
    await commit(db)
    assert len(sink.sent_to(host.id, "commission_due")) == 1


async def test_aggregation_tracks_paid_commission(db, sink):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    await make_commission_booking(db, prop, guest, 6_000, check_in=date(2026, 2, 3), commission_paid=True)
    await make_commission_booking(db, prop, guest, 4_000, check_in=date(2026, 2, 9))

    (entry,) = await dues_service.run_monthly_aggregation(db, FEBRUARY)

    assert entry.amount == 10_000
    assert entry.paid_amount == 6_000
    assert entry.status == "partial"
    assert entry.outstanding == 4_000


async def test_fully_paid_month_creates_no_row(db, sink):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    await make_commission_booking(db, prop, guest, 6_000, commission_paid=True)

    touched = await dues_service.run_monthly_aggregation(db, FEBRUARY)

    assert touched == []
    assert await _ledger_count(db) == 0


async def test_cancelled_month_clears_its_ledger_row(db, sink):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    booking = await make_commission_booking(db, prop, guest, 12_000, check_in=date(2026, 2, 3))
    (entry,) = await dues_service.run_monthly_aggregation(db, FEBRUARY)
    assert entry.status == "unpaid"

    booking.status = "cancelled"
    await db.flush()
    rerun = await dues_service.run_monthly_aggregation(db, FEBRUARY)

    assert rerun == [entry]
    assert entry.amount == 0
    assert entry.outstanding == 0
    assert entry.status == "paid"
    assert entry.paid_at is not None
    assert await _ledger_count(db) == 1
    assert await dues_service.run_reminder_sweep(db, today=WITHIN_GRACE) == 0
    outcome = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE)
    assert outcome.enforced_items == 0
    assert outcome.blocked is False
    assert host.is_blocked is False
    await commit(db)
    assert not sink.sent_to(host.id, "dues_reminder")
    assert not sink.sent_to(host.id, "account_blocked")


async def test_reminders_go_out_once_per_day_within_grace(db, sink):
    host, _, _ = await _host_with_february_commission(db)
    await dues_service.run_monthly_aggregation(db, FEBRUARY)

    assert await dues_service.run_reminder_sweep(db, today=date(2026, 2, 28)) == 0
    assert await dues_service.run_reminder_sweep(db, today=WITHIN_GRACE) == 1
    assert await dues_service.run_reminder_sweep(db, today=WITHIN_GRACE) == 0
    assert await dues_service.run_reminder_sweep(db, today=WITHIN_GRACE + timedelta(days=1)) == 1
    assert await dues_service.run_reminder_sweep(db, today=date(2026, 3, 16)) == 0

    await commit(db)
    reminders = sink.sent_to(host.id, "dues_reminder")
    assert [r["payload"]["reminder_stage"] for r in reminders] == [1, 2]


async def test_create_fine_records_a_ledger_row(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")

    fine = await dues_service.create_fine(
        db, host.id, 10_000, "Misleading photos", actor_for(admin), due_date=date(2026, 3, 1)
    )

    assert fine.amount == 10_000
    assert fine.paid is False
    assert fine.created_by == admin.id
    assert host.total_fines_due == 10_000
    result = await db.execute(select(DuesLedgerEntry).where(DuesLedgerEntry.fine_id == fine.id))
    entry = result.scalar_one()
    assert entry.kind == "fine"
    assert entry.amount == 10_000
    assert entry.due_date == date(2026, 3, 1)


async def test_create_fine_guards(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")

    with pytest.raises(Unauthorized):
        await dues_service.create_fine(db, host.id, 10_000, "Noise", actor_for(host))
    with pytest.raises(InvalidAmount):
        await dues_service.create_fine(db, host.id, 0, "Noise", actor_for(admin))


async def test_overdue_fine_is_penalised_once_and_blocks(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")
    fine = await dues_service.create_fine(
        db, host.id, 10_000, "Late check-in fees", actor_for(admin), due_date=date(2026, 3, 1)
    )

    first = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE)
    second = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE + timedelta(days=3))

    assert (first.penalties_applied, first.enforced_items, first.blocked) == (1, 1, True)
    assert (second.penalties_applied, second.enforced_items, second.blocked) == (0, 0, False)
    assert fine.amount == 10_200
    assert fine.penalty_applied and fine.commission_applied
    assert host.total_fines_due == 10_200
    assert host.is_blocked
    assert host.block_reason == "Commission/fine payment overdue"
    result = await db.execute(select(DuesLedgerEntry).where(DuesLedgerEntry.fine_id == fine.id))
    assert result.scalar_one().amount == 10_200
    await commit(db)
    assert len(sink.sent_to(host.id, "account_blocked")) == 1
    assert sink.sent_to("finance@akwanda.rw", "commission_due")


async def test_fine_not_yet_due_is_left_alone(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")
    fine = await dues_service.create_fine(
        db, host.id, 10_000, "Noise", actor_for(admin), due_date=date(2026, 4, 1)
    )

    outcome = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE)

    assert outcome.enforced_items == 0
    assert fine.amount == 10_000
    assert host.is_blocked is False


async def test_overdue_commission_row_blocks_the_host(db, sink):
    host, _, _ = await _host_with_february_commission(db)
    (entry,) = await dues_service.run_monthly_aggregation(db, FEBRUARY)

    within = await dues_service.enforce_overdue(
        db, host, now=datetime(2026, 3, 15, 9, 0, tzinfo=UTC)
    )
    after = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE)

    assert within.enforced_items == 0
    assert after.blocked is True
    assert entry.enforcement_applied is True
    assert host.is_blocked


async def test_paused_enforcement_changes_nothing(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")
    fine = await dues_service.create_fine(
        db, host.id, 10_000, "Noise", actor_for(admin), due_date=date(2026, 3, 1)
    )
    await commission_service.update_settings(db, actor_for(admin), enforcement_paused=True)

    outcome = await dues_service.enforce_overdue(db, host, now=AFTER_GRACE)

    assert outcome.enforced_items == 0
    assert outcome.penalties_applied == 0
    assert fine.amount == 10_000
    assert fine.penalty_applied is False
    assert host.is_blocked is False


async def test_overdue_sweep_visits_each_host_once(db, sink):
    admin = await make_user(db, "admin")
    fined = await make_user(db, "host")
    indebted, _, _ = await _host_with_february_commission(db)
    clean = await make_user(db, "host")
    await dues_service.create_fine(
        db, fined.id, 4_000, "Noise", actor_for(admin), due_date=date(2026, 3, 1)
    )
    await dues_service.run_monthly_aggregation(db, FEBRUARY)

    affected = await dues_service.run_overdue_sweep(db, now=AFTER_GRACE)
    again = await dues_service.run_overdue_sweep(db, now=AFTER_GRACE)

    assert affected == 2
    assert again == 0
    assert fined.is_blocked and indebted.is_blocked
    assert clean.is_blocked is False


async def test_host_account_runs_enforcement_first(db, sink):
    host = await make_user(db, "host")
    admin = await make_user(db, "admin")
    other = await make_user(db, "host")
    await dues_service.create_fine(
        db, host.id, 10_000, "Noise", actor_for(admin), due_date=date(2026, 3, 1)
    )

    account = await dues_service.get_host_account(db, host.id, actor_for(host), now=AFTER_GRACE)

    assert account.is_blocked
    assert account.total_fines_due == 10_200
    with pytest.raises(Unauthorized):
        await dues_service.get_host_account(db, host.id, actor_for(other), now=AFTER_GRACE)


async def test_ledger_listing_is_scoped(db, sink):
    admin = await make_user(db, "admin")
    first = await make_user(db, "host")
    second = await make_user(db, "host")
    await dues_service.create_fine(db, first.id, 1_000, "Noise", actor_for(admin))
    await dues_service.create_fine(db, second.id, 2_000, "Noise", actor_for(admin))

    own = await dues_service.list_ledger(db, actor_for(first), host_id=second.id)
    everything = await dues_service.list_ledger(db, actor_for(admin))
    unpaid_second = await dues_service.list_ledger(db, actor_for(admin), host_id=second.id, status="unpaid")

    assert [entry.user_id for entry in own] == [first.id]
    assert len(everything) == 2
    assert [entry.amount for entry in unpaid_second] == [2_000]

"""Dues ledger: monthly commission aggregation, reminders, fines and overdue enforcement."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings
from akwanda.core.exceptions import InvalidAmount, NotFoundError, Unauthorized
from akwanda.core.permissions import require_admin
from akwanda.core.security import Actor
from akwanda.domain.access_state import AccessState, apply_access_state
from akwanda.models.booking import Booking
from akwanda.models.dues import DuesLedgerEntry
from akwanda.models.user import HostFine, User
from akwanda.services.commission_service import commission_service
from akwanda.services.notification_service import notification_service
from akwanda.utils.dates import local_date, local_today, month_bounds, utcnow
from akwanda.utils.money import percent_of

logger = logging.getLogger(__name__)

# Bookings whose commission is owed to the platform
COMMISSION_OWING_STATUSES = ("confirmed", "ended")
OPEN_LEDGER_STATUSES = ("unpaid", "partial")


def ledger_status(amount: int, paid_amount: int) -> str:
    if paid_amount >= amount:
        return "paid"
    if paid_amount > 0:
        return "partial"
    return "unpaid"


def commission_owing_filter():
    """Criteria of bookings that count towards a host's commission dues."""
    return (
        Booking.payment_status == "paid",
        Booking.status.in_(COMMISSION_OWING_STATUSES),
        Booking.commission_amount > 0,
    )


@dataclass
class EnforcementResult:
    """Outcome of one overdue evaluation for a host."""

    penalties_applied: int = 0
    enforced_items: int = 0
    blocked: bool = False


class DuesService:
    """Service for host dues."""

    async def run_monthly_aggregation(
        self, db: AsyncSession, period: date
    ) -> list[DuesLedgerEntry]:
        """Upsert one commission ledger row per host for the month containing ``period``.

        Safe to re-run: amounts are recomputed from the bookings each time.

        Returns:
            list[DuesLedgerEntry]: Rows created or updated
        """
        period_start, period_end = month_bounds(period)
        result = await db.execute(
            select(
                Booking.host_id,
                func.sum(Booking.commission_amount),
                func.sum(
                    case((Booking.commission_paid.is_(True), Booking.commission_amount), else_=0)
                ),
            )
            .where(
                *commission_owing_filter(),
                Booking.check_in >= period_start,
                Booking.check_in <= period_end,
            )
            .group_by(Booking.host_id)
        )
        totals = {host_id: (owed or 0, paid or 0) for host_id, owed, paid in result.all()}

        existing_result = await db.execute(
            select(DuesLedgerEntry).where(
                DuesLedgerEntry.kind == "commission",
                DuesLedgerEntry.period_start == period_start,
            )
        )
        existing = {entry.user_id: entry for entry in existing_result.scalars().all()}

        due_date = period_end
        grace_end_date = due_date + timedelta(days=settings.dues_grace_days)
        touched: list[DuesLedgerEntry] = []

        for host_id, (owed, paid) in sorted(totals.items(), key=lambda item: str(item[0])):
            entry = existing.get(host_id)
            if entry is None:
                if owed - paid <= 0:
                    continue
                entry = DuesLedgerEntry(
                    user_id=host_id,
                    kind="commission",
                    description=f"Commission for {period_start:%B %Y}",
                    period_start=period_start,
                    period_end=period_end,
                    currency=settings.currency,
                    due_date=due_date,
                    grace_end_date=grace_end_date,
                    reminder_stage=0,
                )
                db.add(entry)
                is_new = True
            else:
                is_new = False

            entry.amount = owed
            entry.paid_amount = paid
            entry.status = ledger_status(owed, paid)
            if entry.status == "paid" and entry.paid_at is None:
                entry.paid_at = utcnow()
            touched.append(entry)

            if is_new:
                notification_service.queue(
                    db,
                    notification_service.COMMISSION_DUE,
                    host_id,
                    {
                        "period_start": period_start,
                        "period_end": period_end,
                        "amount": owed - paid,
                        "due_date": due_date,
                    },
                )

        # Hosts whose owing bookings for the month were all cancelled since the last run
        for host_id, entry in existing.items():
            if host_id in totals:
                continue
            entry.amount = entry.paid_amount
            entry.status = ledger_status(entry.amount, entry.paid_amount)
            if entry.paid_at is None:
                entry.paid_at = utcnow()
            touched.append(entry)

        await db.flush()
        logger.info(
            "Commission aggregation for %s: %d ledger rows", period_start, len(touched)
        )
        return touched

    async def run_reminder_sweep(self, db: AsyncSession, today: date | None = None) -> int:
        """Remind hosts of open rows past due but still within grace.

        At most one reminder per row per calendar day.

        Returns:
            int: Number of reminders emitted
        """
        today = today or local_today(settings.timezone)
        result = await db.execute(
            select(DuesLedgerEntry)
            .where(
                DuesLedgerEntry.status.in_(OPEN_LEDGER_STATUSES),
                DuesLedgerEntry.due_date < today,
                DuesLedgerEntry.grace_end_date >= today,
                or_(
                    DuesLedgerEntry.last_reminder_on.is_(None),
                    DuesLedgerEntry.last_reminder_on < today,
                ),
            )
            .order_by(DuesLedgerEntry.due_date, DuesLedgerEntry.id)
        )
        entries = result.scalars().all()
        for entry in entries:
            entry.reminder_stage = (entry.reminder_stage or 0) + 1
            entry.last_reminder_on = today
            notification_service.queue(
                db,
                notification_service.DUES_REMINDER,
                entry.user_id,
                {
                    "ledger_entry_id": entry.id,
                    "kind": entry.kind,
                    "outstanding": entry.outstanding,
                    "due_date": entry.due_date,
                    "grace_end_date": entry.grace_end_date,
                    "reminder_stage": entry.reminder_stage,
                },
            )
        await db.flush()
        logger.info("Reminder sweep %s: %d reminders", today, len(entries))
        return len(entries)

    async def create_fine(
        self,
        db: AsyncSession,
        host_id: UUID,
        amount: int,
        reason: str,
        actor: Actor,
        due_date: date | None = None,
    ) -> HostFine:
        """Record a fine against a host (admin only) and its ledger row."""
        require_admin(actor)
        if amount <= 0:
            raise InvalidAmount("Fine amount must be greater than zero")

        result = await db.execute(select(User).where(User.id == host_id).with_for_update())
        host = result.scalar_one_or_none()
        if host is None:
            raise NotFoundError("Host", str(host_id))

        fine = HostFine(
            user_id=host.id,
            reason=reason,
            amount=amount,
            due_date=due_date,
            paid=False,
            penalty_applied=False,
            commission_applied=False,
            created_by=actor.user_id,
        )
        db.add(fine)
        host.total_fines_due = (host.total_fines_due or 0) + amount
        await db.flush()

        today = local_today(settings.timezone)
        ledger_due = due_date or today
        db.add(
            DuesLedgerEntry(
                user_id=host.id,
                kind="fine",
                description=reason,
                period_start=today,
                period_end=today,
                amount=amount,
                paid_amount=0,
                currency=settings.currency,
                status="unpaid",
                due_date=ledger_due,
                grace_end_date=ledger_due + timedelta(days=settings.dues_grace_days),
                fine_id=fine.id,
            )
        )
        await db.flush()
        logger.info("Fine of %s recorded for host %s: %s", amount, host.id, reason)
        return fine

    async def enforce_overdue(
        self, db: AsyncSession, host: User, now: datetime | None = None
    ) -> EnforcementResult:
        """Apply late penalties and block a host with overdue obligations.

        Every effect is guarded by a per-item flag, so evaluating the same
        host again changes nothing. Nothing happens while enforcement is
        paused in the commission settings.
        """
        now = now or utcnow()
        today = local_date(now, settings.timezone)
        outcome = EnforcementResult()

        commission_settings = await commission_service.get_settings(db)
        if commission_settings.enforcement_paused:
            return outcome

        fines_result = await db.execute(
            select(HostFine)
            .where(
                HostFine.user_id == host.id,
                HostFine.paid.is_(False),
                HostFine.due_date.is_not(None),
                HostFine.due_date < today,
            )
            .order_by(HostFine.created_at, HostFine.id)
        )
        overdue_fines = fines_result.scalars().all()

        ledger_result = await db.execute(
            select(DuesLedgerEntry)
            .where(
                DuesLedgerEntry.user_id == host.id,
                DuesLedgerEntry.kind == "commission",
                DuesLedgerEntry.status.in_(OPEN_LEDGER_STATUSES),
                DuesLedgerEntry.grace_end_date < today,
                DuesLedgerEntry.enforcement_applied.is_(False),
            )
            .order_by(DuesLedgerEntry.due_date, DuesLedgerEntry.id)
        )
        overdue_rows = ledger_result.scalars().all()

        newly_enforced: list[dict] = []
        for fine in overdue_fines:
            if not fine.penalty_applied:
                penalty = percent_of(fine.amount, settings.late_penalty_percent)
                fine.amount += penalty
                fine.penalty_applied = True
                host.total_fines_due = (host.total_fines_due or 0) + penalty
                await self._grow_fine_ledger_row(db, fine.id, penalty)
                outcome.penalties_applied += 1
                logger.info("Late penalty of %s applied to fine %s", penalty, fine.id)
            if not fine.commission_applied:
                fine.commission_applied = True
                newly_enforced.append({"kind": "fine", "id": fine.id, "amount": fine.amount})

        for row in overdue_rows:
            row.enforcement_applied = True
            newly_enforced.append({"kind": "commission", "id": row.id, "amount": row.outstanding})

        outcome.enforced_items = len(newly_enforced)
        if newly_enforced:
            if not host.is_blocked:
                apply_access_state(
                    host,
                    AccessState.BLOCKED,
                    reason=settings.block_reason_overdue,
                    now=now,
                )
                outcome.blocked = True
                logger.info("Host %s blocked for overdue dues", host.id)

            payload = {
                "host_id": host.id,
                "items": newly_enforced,
                "total_fines_due": host.total_fines_due,
                "blocked": host.is_blocked,
            }
            if outcome.blocked:
                notification_service.queue(db, notification_service.ACCOUNT_BLOCKED, host.id, payload)
            notification_service.queue(db, notification_service.COMMISSION_DUE, host.id, payload)
            notification_service.queue_platform(db, notification_service.COMMISSION_DUE, payload)

        await db.flush()
        return outcome

    async def _grow_fine_ledger_row(self, db: AsyncSession, fine_id: UUID, penalty: int) -> None:
        result = await db.execute(
            select(DuesLedgerEntry).where(DuesLedgerEntry.fine_id == fine_id)
        )
        entry = result.scalar_one_or_none()
        if entry is not None:
            entry.amount += penalty
            entry.status = ledger_status(entry.amount, entry.paid_amount)

    async def run_overdue_sweep(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Evaluate overdue enforcement for every host with something overdue.

        Returns:
            int: Number of hosts with new penalties or enforcement
        """
        now = now or utcnow()
        today = local_date(now, settings.timezone)
        fine_hosts = select(HostFine.user_id).where(
            HostFine.paid.is_(False),
            HostFine.due_date.is_not(None),
            HostFine.due_date < today,
            or_(HostFine.penalty_applied.is_(False), HostFine.commission_applied.is_(False)),
        )
        ledger_hosts = select(DuesLedgerEntry.user_id).where(
            DuesLedgerEntry.kind == "commission",
            DuesLedgerEntry.status.in_(OPEN_LEDGER_STATUSES),
            DuesLedgerEntry.grace_end_date < today,
            DuesLedgerEntry.enforcement_applied.is_(False),
        )
        result = await db.execute(
            select(User)
            .where(or_(User.id.in_(fine_hosts), User.id.in_(ledger_hosts)))
            .order_by(User.id)
            .with_for_update()
        )
        affected = 0
        for host in result.scalars().all():
            outcome = await self.enforce_overdue(db, host, now)
            if outcome.penalties_applied or outcome.enforced_items:
                affected += 1
        logger.info("Overdue sweep: %d hosts affected", affected)
        return affected

    async def get_host_account(
        self, db: AsyncSession, host_id: UUID, actor: Actor, now: datetime | None = None
    ) -> User:
        """Load a host profile, evaluating overdue enforcement first."""
        if not actor.is_admin and actor.user_id != host_id:
            raise Unauthorized("You can only view your own account")
        result = await db.execute(select(User).where(User.id == host_id).with_for_update())
        host = result.scalar_one_or_none()
        if host is None:
            raise NotFoundError("Host", str(host_id))
        await self.enforce_overdue(db, host, now)
        return host

    async def list_ledger(
        self,
        db: AsyncSession,
        actor: Actor,
        host_id: UUID | None = None,
        status: str | None = None,
    ) -> list[DuesLedgerEntry]:
        """Ledger rows, oldest first; non-admins only see their own."""
        if not actor.is_admin:
            host_id = actor.user_id
        query = select(DuesLedgerEntry)
        if host_id is not None:
            query = query.where(DuesLedgerEntry.user_id == host_id)
        if status is not None:
            query = query.where(DuesLedgerEntry.status == status)
        result = await db.execute(
            query.order_by(DuesLedgerEntry.period_start, DuesLedgerEntry.created_at)
        )
        return list(result.scalars().all())


# Singleton instance
dues_service = DuesService()

"""Settlement of host dues.

Applies a host's payment to its outstanding obligations:
- Commission of paid, confirmed/ended bookings first, oldest booking first
- Then fine items, oldest first
- An obligation is only ever settled in full; the first one the remaining
  payment cannot cover ends the allocation
- Totals are recomputed from the rows on every call, under a row lock on the host
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.core.exceptions import InvalidAmount, NotFoundError, Unauthorized
from akwanda.core.security import Actor
from akwanda.domain.access_state import (
    AccessState,
    apply_access_state,
    current_access_state,
    derive_settlement_access,
)
from akwanda.models.booking import Booking
from akwanda.models.dues import DuesLedgerEntry
from akwanda.models.user import HostFine, User
from akwanda.services.dues_service import commission_owing_filter, ledger_status
from akwanda.services.notification_service import notification_service
from akwanda.utils.dates import month_bounds, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of one settlement call."""

    remaining_due: int
    fully_cleared: bool
    partial_unlock: bool
    amount_applied: int
    total_due_before: int
    access_state: AccessState = AccessState.ACTIVE

    def as_dict(self) -> dict:
        return {
            "remaining_due": self.remaining_due,
            "fully_cleared": self.fully_cleared,
            "partial_unlock": self.partial_unlock,
            "amount_applied": self.amount_applied,
            "total_due_before": self.total_due_before,
            "access_state": self.access_state.value,
        }


class SettlementService:
    """Service for applying host payments to dues."""

    async def _lock_host(self, db: AsyncSession, host_id: UUID) -> User:
        result = await db.execute(select(User).where(User.id == host_id).with_for_update())
        host = result.scalar_one_or_none()
        if host is None:
            raise NotFoundError("Host", str(host_id))
        return host

    async def unpaid_commission_bookings(self, db: AsyncSession, host_id: UUID) -> list[Booking]:
        """Bookings with commission still owed, in FIFO order."""
        result = await db.execute(
            select(Booking)
            .where(
                Booking.host_id == host_id,
                Booking.commission_paid.is_(False),
                *commission_owing_filter(),
            )
            .order_by(Booking.created_at, Booking.id)
        )
        return list(result.scalars().all())

    async def unpaid_fines(self, db: AsyncSession, host_id: UUID) -> list[HostFine]:
        """Unpaid fine items, in FIFO order."""
        result = await db.execute(
            select(HostFine)
            .where(HostFine.user_id == host_id, HostFine.paid.is_(False))
            .order_by(HostFine.created_at, HostFine.id)
        )
        return list(result.scalars().all())

    async def settle_payment(
        self,
        db: AsyncSession,
        host_id: UUID,
        amount: int,
        actor: Actor | None = None,
        now: datetime | None = None,
    ) -> SettlementResult:
        """Apply ``amount`` paid by a host to its dues.

        Args:
            db: Database session (the caller owns the transaction)
            host_id: Paying host
            amount: Payment amount in whole currency units
            actor: Caller; the host itself or an admin. ``None`` for internal callers
            now: Settlement time

        Returns:
            SettlementResult: Remaining due and access outcome

        Raises:
            InvalidAmount: If amount is not positive
            Unauthorized: If the actor is neither the host nor an admin
        """
        if amount <= 0:
            raise InvalidAmount("Payment amount must be greater than zero")
        if actor is not None and not actor.is_admin and actor.user_id != host_id:
            raise Unauthorized("You can only settle your own dues")
        now = now or utcnow()

        # Serializes settlement per host
        host = await self._lock_host(db, host_id)

        bookings = await self.unpaid_commission_bookings(db, host.id)
        fines = await self.unpaid_fines(db, host.id)
        commission_due = sum(b.commission_amount for b in bookings)
        fines_due = sum(f.amount for f in fines)
        total_due_before = commission_due + fines_due

        available = amount
        applied = 0
        settled_bookings: list[Booking] = []
        settled_fines: list[HostFine] = []
        exhausted = False

        for booking in bookings:
            if booking.commission_amount > available:
                exhausted = True
                break
            available -= booking.commission_amount
            applied += booking.commission_amount
            booking.commission_paid = True
            booking.commission_paid_at = now
            settled_bookings.append(booking)

        if not exhausted:
            for fine in fines:
                if fine.amount > available:
                    break
                available -= fine.amount
                applied += fine.amount
                fine.paid = True
                fine.paid_at = now
                settled_fines.append(fine)

        host.total_fines_due = fines_due - sum(f.amount for f in settled_fines)
        remaining_due = max(total_due_before - applied, 0)

        await self._settle_ledger_rows(db, host.id, settled_bookings, settled_fines, now)

        before_state = current_access_state(host)
        after_state = derive_settlement_access(before_state, total_due_before, remaining_due, amount)
        if after_state != before_state:
            apply_access_state(host, after_state)
            logger.info(
                "Host %s access %s → %s after settlement",
                host.id,
                before_state.value,
                after_state.value,
            )

        await db.flush()

        result = SettlementResult(
            remaining_due=remaining_due,
            fully_cleared=remaining_due <= 0,
            partial_unlock=(
                after_state == AccessState.LIMITED_ACCESS
                and before_state == AccessState.BLOCKED
            ),
            amount_applied=applied,
            total_due_before=total_due_before,
            access_state=after_state,
        )
        logger.info(
            "Settlement for host %s: paid=%s applied=%s before=%s remaining=%s",
            host.id,
            amount,
            applied,
            total_due_before,
            remaining_due,
        )

        payload = {"host_id": host.id, **result.as_dict(), "payment_amount": amount}
        if result.fully_cleared:
            notification_service.queue(db, notification_service.DUES_CLEARED, host.id, payload)
        else:
            notification_service.queue(db, notification_service.DUES_PARTIAL, host.id, payload)
        if after_state == AccessState.ACTIVE and before_state != AccessState.ACTIVE:
            notification_service.queue(db, notification_service.ACCOUNT_REACTIVATED, host.id, payload)
        return result

    async def _settle_ledger_rows(
        self,
        db: AsyncSession,
        host_id: UUID,
        bookings: list[Booking],
        fines: list[HostFine],
        now: datetime,
    ) -> None:
        """Mirror settled bookings and fines onto their ledger rows."""
        by_period: dict[date, int] = defaultdict(int)
        for booking in bookings:
            period_start, _ = month_bounds(booking.check_in)
            by_period[period_start] += booking.commission_amount

        if by_period:
            result = await db.execute(
                select(DuesLedgerEntry).where(
                    DuesLedgerEntry.user_id == host_id,
                    DuesLedgerEntry.kind == "commission",
                    DuesLedgerEntry.period_start.in_(list(by_period)),
                )
            )
            for entry in result.scalars().all():
                entry.paid_amount = min(entry.amount, entry.paid_amount + by_period[entry.period_start])
                self._refresh_entry(entry, now)

        if fines:
            result = await db.execute(
                select(DuesLedgerEntry).where(
                    DuesLedgerEntry.fine_id.in_([fine.id for fine in fines])
                )
            )
            for entry in result.scalars().all():
                entry.paid_amount = entry.amount
                self._refresh_entry(entry, now)

    def _refresh_entry(self, entry: DuesLedgerEntry, now: datetime) -> None:
        entry.status = ledger_status(entry.amount, entry.paid_amount)
        if entry.status == "paid" and entry.paid_at is None:
            entry.paid_at = now


# Singleton instance
settlement_service = SettlementService()

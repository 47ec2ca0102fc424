"""Dues ledger models.

One row per host per obligation period; rows are never deleted, only
settled.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from akwanda.database import Base
from akwanda.utils.dates import utcnow

if TYPE_CHECKING:
    from akwanda.models.user import User


class DuesLedgerEntry(Base):
    """Aggregated commission or fine obligation of a host."""

    __tablename__ = "dues_ledger"
    __table_args__ = (
        # One commission row per host per period; fine rows are keyed by fine_id
        Index(
            "uq_dues_commission_period",
            "user_id",
            "kind",
            "period_start",
            unique=True,
            postgresql_where=text("kind = 'commission'"),
            sqlite_where=text("kind = 'commission'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # commission, fine
    description: Mapped[str | None] = mapped_column(Text)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_amount: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="RWF")
    status: Mapped[str] = mapped_column(
        String(20), default="unpaid", index=True
    )  # unpaid, partial, paid

    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    grace_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Reminder bookkeeping
    reminder_stage: Mapped[int] = mapped_column(Integer, default=0)
    last_reminder_on: Mapped[date | None] = mapped_column(Date)

    # Set once the overdue sweep has blocked the host for this row
    enforcement_applied: Mapped[bool] = mapped_column(Boolean, default=False)

    fine_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("host_fines.id"), unique=True
    )

    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="dues")

    @property
    def outstanding(self) -> int:
        return max(0, self.amount - self.paid_amount)

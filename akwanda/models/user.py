"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from akwanda.database import Base
from akwanda.utils.dates import utcnow

if TYPE_CHECKING:
    from akwanda.models.dues import DuesLedgerEntry
    from akwanda.models.property import Property


class User(Base):
    """User account model.

    Identity itself lives in the auth service; this row carries what the
    booking engine needs: the role and, for hosts, the access flags and fines.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="guest"
    )  # guest, host, admin, worker

    # Host access flags (mutated only through domain.access_state)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)
    blocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    block_reason: Mapped[str | None] = mapped_column(Text)
    blocked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    limited_access: Mapped[bool] = mapped_column(Boolean, default=False)

    # Aggregate of unpaid fine items, including applied late penalties
    total_fines_due: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="host")
    fines: Mapped[list["HostFine"]] = relationship(
        "HostFine",
        back_populates="user",
        foreign_keys="[HostFine.user_id]",
        cascade="all, delete-orphan",
        order_by="HostFine.created_at",
    )
    dues: Mapped[list["DuesLedgerEntry"]] = relationship("DuesLedgerEntry", back_populates="user")

    @property
    def full_name(self) -> str:
        """Get user's full name."""
        parts = [self.first_name, self.last_name]
        return " ".join(p for p in parts if p) or self.email


class HostFine(Base):
    """Fine item owed by a host."""

    __tablename__ = "host_fines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)

    paid: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # One-shot guards for the overdue sweep
    penalty_applied: Mapped[bool] = mapped_column(Boolean, default=False)
    commission_applied: Mapped[bool] = mapped_column(Boolean, default=False)

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="fines", foreign_keys=[user_id])


class WorkerPrivilege(Base):
    """Booking privileges a host delegates to a worker."""

    __tablename__ = "worker_privileges"
    __table_args__ = (
        UniqueConstraint("host_id", "worker_id", name="unique_worker_privilege"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    can_manage_bookings: Mapped[bool] = mapped_column(Boolean, default=True)
    can_cancel_bookings: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

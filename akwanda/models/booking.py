"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from akwanda.database import Base
from akwanda.utils.dates import utcnow

if TYPE_CHECKING:
    from akwanda.models.property import Property, Room


LIVE_BOOKING_STATUSES = ("pending", "awaiting", "confirmed")
TERMINAL_BOOKING_STATUSES = ("cancelled", "ended")


class Booking(Base):
    """Booking model."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_property_dates", "property_id", "check_in", "check_out"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    confirmation_code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # AKW-XXXXXX
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id"), nullable=False, index=True
    )
    room_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("rooms.id"), index=True)
    guest_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    # Dates
    check_in: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Guests
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)
    infants: Mapped[int] = mapped_column(Integer, default=0)
    is_group_booking: Mapped[bool] = mapped_column(Boolean, default=False)
    group_size: Mapped[int | None] = mapped_column(Integer)
    coupon_code: Mapped[str | None] = mapped_column(String(50))

    # Pricing
    nightly_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    promotion_discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    promotion_discount_amount: Mapped[int] = mapped_column(Integer, default=0)
    group_discount_amount: Mapped[int] = mapped_column(Integer, default=0)
    amount_before_tax: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    tax_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    add_ons_total: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="RWF")

    # Direct (host-entered) booking
    is_direct: Mapped[bool] = mapped_column(Boolean, default=False)
    negotiated_total: Mapped[int | None] = mapped_column(Integer)

    # Commission, fixed at creation time
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_paid: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    commission_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Payment
    payment_status: Mapped[str] = mapped_column(
        String(20), default="unpaid", index=True
    )  # unpaid, paid
    payment_method: Mapped[str | None] = mapped_column(String(30))  # cash, mobile_money, card
    amount_paid: Mapped[int] = mapped_column(Integer, default=0)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, awaiting, confirmed, cancelled, ended

    # Cancellation
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # guest, host, admin, worker
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    special_requests: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    listing: Mapped["Property"] = relationship("Property", back_populates="bookings")
    room: Mapped["Room | None"] = relationship("Room")
    add_ons: Mapped[list["BookingAddOn"]] = relationship(
        "BookingAddOn", back_populates="booking", cascade="all, delete-orphan", lazy="selectin"
    )


class BookingAddOn(Base):
    """Flat-amount service line attached to a direct booking."""

    __tablename__ = "booking_add_ons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="add_ons")

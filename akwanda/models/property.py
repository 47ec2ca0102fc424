"""Property-related database models.

The booking engine only reads these; property CRUD belongs to the catalogue
service.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from akwanda.database import Base
from akwanda.utils.dates import utcnow

if TYPE_CHECKING:
    from akwanda.models.booking import Booking
    from akwanda.models.user import User


class Property(Base):
    """Property listing model."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    city: Mapped[str | None] = mapped_column(String(100))

    # Pricing (whole currency units, RWF has no minor unit)
    price_per_night: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="RWF")
    children_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    infant_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    # Heuristic capacity when booked as a whole unit
    max_adults: Mapped[int] = mapped_column(Integer, default=2)
    max_children: Mapped[int] = mapped_column(Integer, default=2)
    max_infants: Mapped[int] = mapped_column(Integer, default=1)

    # Group discount
    group_discount_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    group_discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))

    # Commission
    commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    commission_tier: Mapped[str] = mapped_column(
        String(20), default="premium"
    )  # base, premium, featured

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    host: Mapped["User"] = relationship("User", back_populates="properties")
    rooms: Mapped[list["Room"]] = relationship(
        "Room", back_populates="listing", cascade="all, delete-orphan"
    )
    promotions: Mapped[list["Promotion"]] = relationship(
        "Promotion", back_populates="listing", cascade="all, delete-orphan"
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="listing")


class Room(Base):
    """Bookable room inside a property."""

    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_number: Mapped[str | None] = mapped_column(String(20))
    room_type: Mapped[str | None] = mapped_column(String(50))
    price_per_night: Mapped[int] = mapped_column(Integer, nullable=False)

    max_adults: Mapped[int] = mapped_column(Integer, default=2)
    max_children: Mapped[int] = mapped_column(Integer, default=2)
    max_infants: Mapped[int] = mapped_column(Integer, default=1)
    children_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    infant_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    listing: Mapped["Property"] = relationship("Property", back_populates="rooms")
    closed_dates: Mapped[list["RoomClosedDate"]] = relationship(
        "RoomClosedDate", back_populates="room", cascade="all, delete-orphan"
    )


class RoomClosedDate(Base):
    """Manual lock on a room for ``[start_date, end_date)``."""

    __tablename__ = "room_closed_dates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    room: Mapped["Room"] = relationship("Room", back_populates="closed_dates")


class Promotion(Base):
    """Discount rule attached to a property."""

    __tablename__ = "promotions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # coupon, last_minute, advance_purchase
    title: Mapped[str | None] = mapped_column(String(150))
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    coupon_code: Mapped[str | None] = mapped_column(String(50))
    last_minute_within_days: Mapped[int | None] = mapped_column(Integer)
    min_advance_days: Mapped[int | None] = mapped_column(Integer)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    listing: Mapped["Property"] = relationship("Property", back_populates="promotions")


class CommissionSettings(Base):
    """Platform-wide commission tiers (single row)."""

    __tablename__ = "commission_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    base_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    premium_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    featured_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    # Commissions are still tracked while paused, only blocking is skipped
    enforcement_paused: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StayBase(BaseModel):
    """Property, optional room and date range of a stay."""

    property_id: UUID
    room_id: UUID | None = None
    check_in: date
    check_out: date


class AvailabilityCheckRequest(StayBase):
    """Schema for an availability check."""

    exclude_booking_id: UUID | None = None


class AvailabilityCheckResponse(BaseModel):
    status: str
    available: bool


class AddOnInput(BaseModel):
    """Flat-amount service line on a direct booking."""

    name: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., ge=0)


class BookingQuoteRequest(StayBase):
    """Schema for pricing a stay without booking it."""

    adults: int = Field(default=1, ge=1, le=50)
    children: int = Field(default=0, ge=0, le=20)
    infants: int = Field(default=0, ge=0, le=10)
    coupon_code: str | None = Field(None, max_length=50)
    is_group_booking: bool = False
    group_size: int | None = Field(None, ge=1)
    negotiated_total: int | None = Field(None, ge=0)
    add_ons: list[AddOnInput] = Field(default_factory=list)


class BookingCreate(BookingQuoteRequest):
    """Schema for creating a booking.

    ``guest_id``, ``negotiated_total`` and ``add_ons`` are only honoured on
    direct bookings entered by the owner (or an admin / delegated worker).
    """

    guest_id: UUID | None = None
    is_direct: bool = False
    payment_method: str | None = Field(
        None, pattern="^(cash|mobile_money|card|bank_transfer)$"
    )
    mark_paid: bool = False
    special_requests: str | None = Field(None, max_length=1000)


class BookingModify(BaseModel):
    """Schema for changing dates or guest counts."""

    check_in: date | None = None
    check_out: date | None = None
    adults: int | None = Field(None, ge=1, le=50)
    children: int | None = Field(None, ge=0, le=20)
    infants: int | None = Field(None, ge=0, le=10)


class BookingCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class PaymentConfirmedEvent(BaseModel):
    """Inbound proof of payment from the payment collaborator."""

    booking_id: UUID
    amount_paid: int = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=30)
    reference: str | None = Field(None, max_length=100)


class BookingAddOnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    amount: int


class PriceBreakdownResponse(BaseModel):
    """Schema for a price breakdown."""

    model_config = ConfigDict(from_attributes=True)

    nightly_rate: int
    nights: int
    base_price: int
    promotion_id: UUID | None = None
    promotion_discount_percent: Decimal
    promotion_discount_amount: int
    group_discount_amount: int
    amount_before_tax: int
    tax_rate: Decimal
    tax_amount: int
    add_ons_total: int
    total_amount: int
    commission_rate: Decimal
    commission_amount: int
    is_direct: bool


class BookingQuoteResponse(BaseModel):
    available: bool
    unavailable_reason: str | None = None
    price_breakdown: PriceBreakdownResponse | None = None


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    confirmation_code: str
    property_id: UUID
    room_id: UUID | None
    guest_id: UUID
    host_id: UUID

    # Dates
    check_in: date
    check_out: date
    nights: int

    # Guests
    adults: int
    children: int
    infants: int
    is_group_booking: bool
    group_size: int | None

    # Pricing
    nightly_rate: int
    base_price: int
    promotion_discount_percent: Decimal
    promotion_discount_amount: int
    group_discount_amount: int
    amount_before_tax: int
    tax_rate: Decimal
    tax_amount: int
    add_ons_total: int
    total_amount: int
    currency: str
    is_direct: bool
    add_ons: list[BookingAddOnResponse] = []

    # Commission
    commission_rate: Decimal
    commission_amount: int
    commission_paid: bool

    # Payment & status
    payment_status: str
    payment_method: str | None
    amount_paid: int
    status: str
    cancelled_by: str | None

    created_at: datetime
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    ended_at: datetime | None

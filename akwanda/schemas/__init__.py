"""Pydantic schemas for API validation."""

from akwanda.schemas.booking import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BookingCancelRequest,
    BookingCreate,
    BookingModify,
    BookingQuoteRequest,
    BookingQuoteResponse,
    BookingResponse,
    PaymentConfirmedEvent,
    PriceBreakdownResponse,
)
from akwanda.schemas.dues import (
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    LedgerEntryResponse,
    RoomLockRequest,
    RoomLockResponse,
    SettlementRequest,
    SettlementResponse,
)
from akwanda.schemas.user import FineCreate, FineResponse, HostAccountResponse

__all__ = [
    # Booking
    "AvailabilityCheckRequest",
    "AvailabilityCheckResponse",
    "BookingCancelRequest",
    "BookingCreate",
    "BookingModify",
    "BookingQuoteRequest",
    "BookingQuoteResponse",
    "BookingResponse",
    "PaymentConfirmedEvent",
    "PriceBreakdownResponse",
    # Dues
    "CommissionSettingsResponse",
    "CommissionSettingsUpdate",
    "LedgerEntryResponse",
    "RoomLockRequest",
    "RoomLockResponse",
    "SettlementRequest",
    "SettlementResponse",
    # Host account
    "FineCreate",
    "FineResponse",
    "HostAccountResponse",
]

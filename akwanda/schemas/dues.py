"""Dues and settlement Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SettlementRequest(BaseModel):
    """Schema for a host payment against dues."""

    host_id: UUID
    amount: int = Field(..., description="Amount paid in whole currency units")
    method: str | None = Field(None, max_length=30)


class SettlementResponse(BaseModel):
    remaining_due: int
    fully_cleared: bool
    partial_unlock: bool
    amount_applied: int
    total_due_before: int
    access_state: str


class LedgerEntryResponse(BaseModel):
    """Schema for a dues ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    kind: str
    description: str | None
    period_start: date
    period_end: date
    amount: int
    paid_amount: int
    currency: str
    status: str
    due_date: date
    grace_end_date: date
    reminder_stage: int
    last_reminder_on: date | None
    paid_at: datetime | None


class AggregationRequest(BaseModel):
    period: date = Field(..., description="Any day in the month to aggregate")


class AggregationResponse(BaseModel):
    period_start: date
    entries: list[LedgerEntryResponse]


class SweepResponse(BaseModel):
    processed: int


class CommissionSettingsUpdate(BaseModel):
    """Schema for updating commission tiers."""

    base_rate: Decimal | None = Field(None, ge=0, le=100)
    premium_rate: Decimal | None = Field(None, ge=0, le=100)
    featured_rate: Decimal | None = Field(None, ge=0, le=100)
    enforcement_paused: bool | None = None
    notes: str | None = Field(None, max_length=1000)


class CommissionSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_rate: Decimal
    premium_rate: Decimal
    featured_rate: Decimal
    enforcement_paused: bool
    notes: str | None = None


class RoomLockRequest(BaseModel):
    start_date: date
    end_date: date
    reason: str | None = Field(None, max_length=200)


class RoomLockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_date: date
    end_date: date
    reason: str | None

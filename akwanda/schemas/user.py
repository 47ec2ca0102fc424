"""Host account Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FineCreate(BaseModel):
    """Schema for an admin-issued fine."""

    host_id: UUID
    amount: int = Field(..., description="Amount in whole currency units")
    reason: str = Field(..., min_length=3, max_length=500)
    due_date: date | None = None


class FineResponse(BaseModel):
    """Schema for a fine item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reason: str
    amount: int
    due_date: date | None
    paid: bool
    paid_at: datetime | None
    penalty_applied: bool
    commission_applied: bool
    created_at: datetime


class HostAccountResponse(BaseModel):
    """Schema for a host's access flags and dues."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: str
    access_state: str
    is_blocked: bool
    limited_access: bool
    blocked_at: datetime | None
    block_reason: str | None
    blocked_until: datetime | None
    total_fines_due: int
    unpaid_commission: int = 0
    fines: list[FineResponse] = []

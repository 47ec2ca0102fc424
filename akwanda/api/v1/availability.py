"""Availability endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_db
from akwanda.schemas.booking import AvailabilityCheckRequest, AvailabilityCheckResponse
from akwanda.services.availability_service import AvailabilityStatus, availability_service

router = APIRouter()


@router.post("/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    request: AvailabilityCheckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AvailabilityCheckResponse:
    """Check whether a property (or room) is free for a date range."""
    result = await availability_service.check_availability(
        db,
        request.property_id,
        request.room_id,
        request.check_in,
        request.check_out,
        exclude_booking_id=request.exclude_booking_id,
    )
    return AvailabilityCheckResponse(
        status=result.value, available=result == AvailabilityStatus.AVAILABLE
    )

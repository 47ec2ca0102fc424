"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_actor, get_db
from akwanda.core.security import Actor
from akwanda.models.booking import Booking
from akwanda.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingModify,
    BookingQuoteRequest,
    BookingQuoteResponse,
    BookingResponse,
    PriceBreakdownResponse,
)
from akwanda.services.booking_service import booking_service

router = APIRouter()


@router.post("/quote", response_model=BookingQuoteResponse)
async def quote_booking(
    request: BookingQuoteRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingQuoteResponse:
    """Price a stay without creating a booking."""
    available, breakdown = await booking_service.quote(db, request)
    if not available:
        return BookingQuoteResponse(
            available=False, unavailable_reason="Selected dates are not available"
        )
    return BookingQuoteResponse(
        available=True,
        price_breakdown=PriceBreakdownResponse.model_validate(breakdown),
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Create a new booking (or a direct booking entered by the owner)."""
    return await booking_service.create_booking(db, booking_data, actor)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Get a booking by ID."""
    return await booking_service.get_booking_for_actor(db, booking_id, actor)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Confirm a pending or awaiting booking."""
    return await booking_service.confirm_booking(db, booking_id, actor)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def modify_booking(
    booking_id: UUID,
    changes: BookingModify,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Change a booking's dates or guest counts."""
    return await booking_service.modify_booking(db, booking_id, changes, actor)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    request: BookingCancelRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Cancel a booking."""
    return await booking_service.cancel_booking(db, booking_id, actor, reason=request.reason)


@router.post("/{booking_id}/end", response_model=BookingResponse)
async def end_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Mark a finished stay as ended."""
    return await booking_service.end_booking(db, booking_id, actor)

"""Payment confirmation endpoint.

Card and mobile-money capture happen in the payment service; it reports
captured payments here.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_admin, get_db
from akwanda.core.security import Actor
from akwanda.models.booking import Booking
from akwanda.schemas.booking import BookingResponse, PaymentConfirmedEvent
from akwanda.services.booking_service import booking_service

router = APIRouter()


@router.post("/confirmed", response_model=BookingResponse)
async def payment_confirmed(
    event: PaymentConfirmedEvent,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Record proof of payment for a booking."""
    return await booking_service.record_payment_confirmed(db, event)

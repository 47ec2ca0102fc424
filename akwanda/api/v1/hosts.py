"""Host account endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_actor, get_db
from akwanda.core.security import Actor
from akwanda.domain.access_state import current_access_state
from akwanda.models.user import HostFine
from akwanda.schemas.user import FineResponse, HostAccountResponse
from akwanda.services.dues_service import dues_service
from akwanda.services.settlement_service import settlement_service

router = APIRouter()


@router.get("/{host_id}/account", response_model=HostAccountResponse)
async def get_host_account(
    host_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HostAccountResponse:
    """Get a host's access state, fines and unpaid commission.

    Overdue enforcement is evaluated before the account is returned.
    """
    host = await dues_service.get_host_account(db, host_id, actor)

    fines_result = await db.execute(
        select(HostFine)
        .where(HostFine.user_id == host.id)
        .order_by(HostFine.created_at.desc())
    )
    fines = fines_result.scalars().all()
    owing = await settlement_service.unpaid_commission_bookings(db, host.id)

    return HostAccountResponse(
        id=host.id,
        email=host.email,
        full_name=host.full_name,
        role=host.role,
        access_state=current_access_state(host).value,
        is_blocked=bool(host.is_blocked),
        limited_access=bool(host.limited_access),
        blocked_at=host.blocked_at,
        block_reason=host.block_reason,
        blocked_until=host.blocked_until,
        total_fines_due=host.total_fines_due or 0,
        unpaid_commission=sum(booking.commission_amount for booking in owing),
        fines=[FineResponse.model_validate(fine) for fine in fines],
    )

"""Room date lock endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_actor, get_db
from akwanda.core.security import Actor
from akwanda.models.property import RoomClosedDate
from akwanda.schemas.dues import RoomLockRequest, RoomLockResponse
from akwanda.services.availability_service import availability_service

router = APIRouter()


@router.get("/{room_id}/locks", response_model=list[RoomLockResponse])
async def list_room_locks(
    room_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[RoomClosedDate]:
    return await availability_service.list_room_locks(db, room_id)


@router.post("/{room_id}/locks", response_model=list[RoomLockResponse])
async def lock_room_dates(
    room_id: UUID,
    request: RoomLockRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[RoomClosedDate]:
    """Close a date range on a room (owner or admin)."""
    return await availability_service.lock_room_dates(
        db, room_id, request.start_date, request.end_date, actor, reason=request.reason
    )


@router.delete("/{room_id}/locks", response_model=list[RoomLockResponse])
async def unlock_room_dates(
    room_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> list[RoomClosedDate]:
    """Reopen a previously locked range."""
    return await availability_service.unlock_room_dates(db, room_id, start_date, end_date, actor)

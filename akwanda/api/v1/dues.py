"""Host dues endpoints: settlement and the dues ledger."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_actor, get_db
from akwanda.core.exceptions import Unauthorized
from akwanda.core.idempotency import recall_settlement, remember_settlement, settlement_replay_key
from akwanda.core.security import Actor
from akwanda.models.dues import DuesLedgerEntry
from akwanda.schemas.dues import LedgerEntryResponse, SettlementRequest, SettlementResponse
from akwanda.services.dues_service import dues_service
from akwanda.services.settlement_service import settlement_service

router = APIRouter()


@router.post("/settle", response_model=SettlementResponse)
async def settle_dues(
    request: SettlementRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
) -> dict:
    """Apply a host payment to unpaid commission and fines.

    A retry carrying the same ``Idempotency-Key`` returns the first result.
    """
    if not actor.is_admin and actor.user_id != request.host_id:
        raise Unauthorized("You can only settle your own dues")

    replay_key = None
    if idempotency_key:
        replay_key = settlement_replay_key(request.host_id, idempotency_key, request.amount)
        previous = recall_settlement(replay_key)
        if previous is not None:
            return previous

    result = await settlement_service.settle_payment(
        db, request.host_id, request.amount, actor=actor
    )
    payload = result.as_dict()

    if replay_key:
        remember_settlement(replay_key, payload)
    return payload


@router.get("/ledger", response_model=list[LedgerEntryResponse])
async def list_ledger(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    host_id: UUID | None = Query(None),
    status: str | None = Query(None, pattern="^(unpaid|partial|paid)$"),
) -> list[DuesLedgerEntry]:
    """List dues ledger rows. Hosts only see their own."""
    return await dues_service.list_ledger(db, actor, host_id=host_id, status=status)

"""Admin panel endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.api.deps import get_current_admin, get_db
from akwanda.core.security import Actor
from akwanda.models.property import CommissionSettings
from akwanda.models.user import HostFine
from akwanda.schemas.dues import (
    AggregationRequest,
    AggregationResponse,
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    LedgerEntryResponse,
    SweepResponse,
)
from akwanda.schemas.user import FineCreate, FineResponse
from akwanda.services.commission_service import commission_service
from akwanda.services.dues_service import dues_service
from akwanda.utils.dates import month_bounds

router = APIRouter()


# ============ FINES ============


@router.post("/fines", response_model=FineResponse, status_code=status.HTTP_201_CREATED)
async def create_fine(
    fine_data: FineCreate,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HostFine:
    """Record a fine against a host."""
    return await dues_service.create_fine(
        db,
        fine_data.host_id,
        fine_data.amount,
        fine_data.reason,
        admin,
        due_date=fine_data.due_date,
    )


# ============ DUES JOBS ============


@router.post("/aggregation", response_model=AggregationResponse)
async def run_aggregation(
    request: AggregationRequest,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AggregationResponse:
    """Run (or re-run) the monthly commission aggregation for a period."""
    entries = await dues_service.run_monthly_aggregation(db, request.period)
    period_start, _ = month_bounds(request.period)
    return AggregationResponse(
        period_start=period_start,
        entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
    )


@router.post("/reminders", response_model=SweepResponse)
async def run_reminders(
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SweepResponse:
    """Send today's dues reminders."""
    return SweepResponse(processed=await dues_service.run_reminder_sweep(db))


@router.post("/overdue-sweep", response_model=SweepResponse)
async def run_overdue_sweep(
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SweepResponse:
    """Apply late penalties and blocks for every overdue host."""
    return SweepResponse(processed=await dues_service.run_overdue_sweep(db))


# ============ COMMISSION SETTINGS ============


@router.get("/commission-settings", response_model=CommissionSettingsResponse)
async def get_commission_settings(
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CommissionSettings:
    return await commission_service.get_settings(db)


@router.put("/commission-settings", response_model=CommissionSettingsResponse)
async def update_commission_settings(
    update: CommissionSettingsUpdate,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CommissionSettings:
    """Change tier rates or pause overdue enforcement."""
    return await commission_service.update_settings(
        db,
        admin,
        base_rate=update.base_rate,
        premium_rate=update.premium_rate,
        featured_rate=update.featured_rate,
        enforcement_paused=update.enforcement_paused,
        notes=update.notes,
    )

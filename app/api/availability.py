"""Availability endpoints."""
from datetime import date, datetime
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.schemas.availability import (
    AvailableDatesResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    CourtSlotsResponse,
)
from app.services.availability_service import availability_service

router = APIRouter(prefix="/tenants/{tenant_id}/courts/{court_id}", tags=["availability"])


def _not_before() -> Optional[datetime]:
    if settings.HIDE_PAST_SLOTS:
        return datetime.now(pytz.UTC)
    return None


@router.get("/slots/{day}", response_model=CourtSlotsResponse)
async def get_slots(
    tenant_id: int,
    court_id: int,
    day: date,
    exclude_booking_id: Optional[int] = Query(default=None, description="Booking being edited"),
    user_id: Optional[int] = Query(default=None, description="Acting user"),
    timezone: Optional[str] = Query(default=None, description="Display timezone"),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the bookable slots of a court for a date.

    The date is read in the tenant's timezone; slots are rendered in the
    display timezone (explicit, else the user's, else the tenant's).

    Args:
        tenant_id: Tenant ID
        court_id: Court ID
        day: Date (YYYY-MM-DD)
        exclude_booking_id: Booking to ignore
        user_id: Acting user
        timezone: Display timezone
        db: Database session

    Returns:
        Slots for the date
    """
    try:
        return await availability_service.get_slots(
            db,
            tenant_id,
            court_id,
            day,
            exclude_booking_id=exclude_booking_id,
            user_id=user_id,
            timezone=timezone,
            not_before=_not_before(),
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/dates", response_model=AvailableDatesResponse)
async def get_available_dates(
    tenant_id: int,
    court_id: int,
    start_date: date = Query(..., description="First date (inclusive)"),
    end_date: date = Query(..., description="Last date (inclusive)"),
    exclude_booking_id: Optional[int] = Query(default=None, description="Booking being edited"),
    user_id: Optional[int] = Query(default=None, description="Acting user"),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the dates of a range with at least one bookable slot.

    Args:
        tenant_id: Tenant ID
        court_id: Court ID
        start_date: First date
        end_date: Last date
        exclude_booking_id: Booking to ignore
        user_id: Acting user
        db: Database session

    Returns:
        Available dates
    """
    if start_date > end_date:
        raise HTTPException(
            status_code=400,
            detail="start_date must be before or equal to end_date",
        )

    if (end_date - start_date).days + 1 > settings.MAX_DATE_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Date range cannot exceed {settings.MAX_DATE_RANGE_DAYS} days",
        )

    try:
        return await availability_service.get_available_dates(
            db,
            tenant_id,
            court_id,
            start_date,
            end_date,
            exclude_booking_id=exclude_booking_id,
            user_id=user_id,
            not_before=_not_before(),
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/check", response_model=ConflictCheckResponse)
async def check_conflict(
    tenant_id: int,
    court_id: int,
    request: ConflictCheckRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Check whether a proposed booking may be made.

    A rejection is a normal answer, not an error: the response carries the
    reason code and a human-readable message.
    """
    try:
        reason = await availability_service.check_conflict(
            db,
            tenant_id,
            court_id,
            request.date,
            request.start_time,
            request.end_time,
            user_id=request.user_id,
            exclude_booking_id=request.exclude_booking_id,
            timezone=request.timezone,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if reason is None:
        return ConflictCheckResponse(available=True)
    return ConflictCheckResponse(available=False, **reason.to_dict())

"""Booking endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import BookingNotEditable, BookingRejected
from app.schemas.booking import BookingBatchResponse, BookingCreate, BookingInDB, BookingUpdate
from app.services.booking_service import booking_service
from app.services.conflict_checker import BookingConflict

router = APIRouter(prefix="/tenants/{tenant_id}/bookings", tags=["bookings"])


def _rejection(e: BookingRejected) -> HTTPException:
    status_code = 409 if isinstance(e.reason, BookingConflict) else 400
    return HTTPException(status_code=status_code, detail=e.reason.to_dict())


@router.post("", response_model=BookingBatchResponse, status_code=201)
async def create_bookings(
    tenant_id: int,
    booking: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create bookings.

    Either one booking from ``start_time``/``end_time``, or one booking per
    contiguous block of ``slots``. Nothing is written if any block is
    rejected.

    Args:
        tenant_id: Tenant ID
        booking: Booking data
        db: Database session

    Returns:
        Created bookings
    """
    try:
        return await booking_service.create_bookings(db, tenant_id, booking)
    except BookingRejected as e:
        raise _rejection(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{booking_id}", response_model=BookingInDB)
async def get_booking(
    tenant_id: int,
    booking_id: int,
    timezone: Optional[str] = Query(default=None, description="Display timezone"),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific booking."""
    try:
        return await booking_service.get_booking(db, tenant_id, booking_id, timezone)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{booking_id}", response_model=BookingBatchResponse)
async def update_booking(
    tenant_id: int,
    booking_id: int,
    booking_update: BookingUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Update a booking.

    Args:
        tenant_id: Tenant ID
        booking_id: Booking ID
        booking_update: Fields to update
        db: Database session

    Returns:
        The updated booking, plus any booking split off from it
    """
    try:
        return await booking_service.update_booking(db, tenant_id, booking_id, booking_update)
    except BookingRejected as e:
        raise _rejection(e)
    except BookingNotEditable as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{booking_id}/cancel", response_model=BookingInDB)
async def cancel_booking(
    tenant_id: int,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking."""
    try:
        return await booking_service.cancel_booking(db, tenant_id, booking_id)
    except BookingNotEditable as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

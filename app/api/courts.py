"""Court endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.models.court import Court
from app.schemas.availability import EffectiveAvailabilityResponse
from app.schemas.court import CourtInDB
from app.services.availability_service import availability_service

router = APIRouter(prefix="/tenants/{tenant_id}/courts", tags=["courts"])


@router.get("/{court_id}", response_model=CourtInDB)
async def get_court(
    tenant_id: int,
    court_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    Get a specific court with its court type.

    Args:
        tenant_id: Tenant ID
        court_id: Court ID
        db: Database session

    Returns:
        Court details
    """
    result = await db.execute(
        select(Court)
        .where(and_(Court.id == court_id, Court.tenant_id == tenant_id))
        .options(selectinload(Court.court_type))
    )
    court = result.scalar_one_or_none()

    if not court:
        raise HTTPException(status_code=404, detail="Court not found")

    return court


@router.get("/{court_id}/availability", response_model=EffectiveAvailabilityResponse)
async def get_effective_availability(
    tenant_id: int,
    court_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get the operating-hours rules governing a court."""
    try:
        return await availability_service.get_effective_availability(db, tenant_id, court_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

"""Court schemas."""
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class CourtTypeInDB(BaseModel):
    """Schema for court type from database."""

    id: int
    tenant_id: int
    type: str
    name: str
    description: Optional[str] = None
    interval_time_minutes: int
    buffer_time_minutes: int
    price_per_interval: int
    status: bool

    model_config = ConfigDict(from_attributes=True)


class CourtInDB(BaseModel):
    """Schema for court from database."""

    id: int
    tenant_id: int
    court_type_id: int
    name: str
    number: Optional[int] = None
    status: bool
    court_type: CourtTypeInDB
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

"""Availability schemas."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Any
from datetime import datetime, date, time

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class SlotSchema(BaseModel):
    """Schema for a single bookable slot (HH:MM in the display timezone)."""

    start: str
    end: str


class CourtSlotsResponse(BaseModel):
    """Schema for the slots of a court on one date."""

    court_id: int
    date: date
    timezone: str
    interval_minutes: int
    buffer_minutes: int
    slots: List[SlotSchema]
    count: int


class AvailableDatesResponse(BaseModel):
    """Schema for the bookable dates of a range."""

    court_id: int
    start_date: date
    end_date: date
    dates: List[date]
    count: int


class ConflictCheckRequest(BaseModel):
    """Schema for checking a proposed booking."""

    date: date
    start_time: str = Field(..., pattern=TIME_PATTERN, description="Start time (HH:MM)")
    end_time: str = Field(..., pattern=TIME_PATTERN, description="End time (HH:MM)")
    user_id: Optional[int] = None
    exclude_booking_id: Optional[int] = None
    timezone: Optional[str] = Field(None, description="Timezone of date/start_time/end_time")


class ConflictCheckResponse(BaseModel):
    """Schema for a conflict check result."""

    available: bool
    code: Optional[str] = None
    message: Optional[str] = None


class CourtAvailabilityInDB(BaseModel):
    """Schema for an operating-hours rule from database."""

    id: int
    tenant_id: int
    court_id: Optional[int] = None
    court_type_id: Optional[int] = None
    day_of_week_recurring: Optional[str] = None
    specific_date: Optional[date] = None
    start_time: time
    end_time: time
    breaks: Optional[List[Any]] = None
    is_available: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EffectiveAvailabilityResponse(BaseModel):
    """Schema for the rules governing a court."""

    court_id: int
    scope: str  # court, court_type
    rules: List[CourtAvailabilityInDB]

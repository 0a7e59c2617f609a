"""Booking schemas."""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime, date, time
from datetime import date as Date

from app.models.booking import BookingStatus
from app.schemas.availability import TIME_PATTERN


class TimeRange(BaseModel):
    """Schema for one requested slot."""

    start: str = Field(..., pattern=TIME_PATTERN)
    end: str = Field(..., pattern=TIME_PATTERN)


class BookingCreate(BaseModel):
    """Schema for creating bookings.

    Either ``start_time``/``end_time`` or a list of ``slots`` must be given.
    Slots are grouped into contiguous blocks, one booking per block.
    """

    court_id: int
    user_id: int
    date: date
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    slots: Optional[List[TimeRange]] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    timezone: Optional[str] = Field(None, description="Timezone of date and times (defaults to the tenant's)")

    @model_validator(mode="after")
    def check_times(self):
        if self.status == BookingStatus.CANCELLED:
            raise ValueError("A booking cannot be created cancelled")
        if self.slots:
            return self
        if not self.start_time or not self.end_time:
            raise ValueError("Provide start_time and end_time, or slots")
        if self.start_time == self.end_time:
            raise ValueError("start_time and end_time must differ")
        return self


class BookingUpdate(BaseModel):
    """Schema for updating a booking."""

    court_id: Optional[int] = None
    date: Optional[Date] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    slots: Optional[List[TimeRange]] = None
    status: Optional[BookingStatus] = None
    timezone: Optional[str] = None

    @property
    def moves_booking(self) -> bool:
        return any(
            value is not None
            for value in (self.court_id, self.date, self.start_time, self.end_time, self.slots)
        )


class BookingInDB(BaseModel):
    """Schema for booking, with UTC storage fields and local view."""

    id: int
    tenant_id: int
    court_id: int
    user_id: int
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    price: int
    status: BookingStatus
    timezone: str
    local_date: date
    local_start_time: str
    local_end_time: str
    created_at: Optional[datetime] = None


class BookingBatchResponse(BaseModel):
    """Schema for the bookings written by one request."""

    bookings: List[BookingInDB]
    count: int

"""API schemas."""
from app.schemas.availability import (
    SlotSchema,
    CourtSlotsResponse,
    AvailableDatesResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    CourtAvailabilityInDB,
    EffectiveAvailabilityResponse,
)
from app.schemas.court import CourtTypeInDB, CourtInDB
from app.schemas.booking import (
    TimeRange,
    BookingCreate,
    BookingUpdate,
    BookingInDB,
    BookingBatchResponse,
)

__all__ = [
    "SlotSchema",
    "CourtSlotsResponse",
    "AvailableDatesResponse",
    "ConflictCheckRequest",
    "ConflictCheckResponse",
    "CourtAvailabilityInDB",
    "EffectiveAvailabilityResponse",
    "CourtTypeInDB",
    "CourtInDB",
    "TimeRange",
    "BookingCreate",
    "BookingUpdate",
    "BookingInDB",
    "BookingBatchResponse",
]

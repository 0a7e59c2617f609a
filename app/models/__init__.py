"""Database models."""
from app.models.tenant import Tenant
from app.models.user import User
from app.models.court_type import CourtType, CourtTypeEnum
from app.models.court import Court
from app.models.availability_rule import CourtAvailability
from app.models.booking import Booking, BookingStatus, ACTIVE_STATUSES

__all__ = [
    "Tenant",
    "User",
    "CourtType",
    "CourtTypeEnum",
    "Court",
    "CourtAvailability",
    "Booking",
    "BookingStatus",
    "ACTIVE_STATUSES",
]

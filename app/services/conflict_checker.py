"""Conflict checking for a single proposed booking.

The checks run in a fixed order and the first failure wins. Failures are
expected business outcomes and are returned as ``FailureReason`` values,
never raised; only malformed configuration raises ``ConfigurationError``.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import ClassVar, Optional, Union

from app.services.existing_bookings import ExistingBookingSet
from app.services.rules import AvailabilityResolver
from app.services.timezone_bridge import format_hhmm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FailureReason:
    """Base class of the rejection taxonomy."""

    code: ClassVar[str] = "failure"

    @property
    def message(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class NoOperatingHours(FailureReason):
    code: ClassVar[str] = "no_operating_hours"

    day: date

    @property
    def message(self) -> str:
        return "No operating hours configured for this date."


@dataclass(frozen=True)
class CourtUnavailable(FailureReason):
    code: ClassVar[str] = "court_unavailable"

    day: date

    @property
    def message(self) -> str:
        return "Court marked unavailable on this date."


@dataclass(frozen=True)
class OutsideOperatingHours(FailureReason):
    code: ClassVar[str] = "outside_operating_hours"

    window: str

    @property
    def message(self) -> str:
        return f"Outside operating hours ({self.window})."


@dataclass(frozen=True)
class BreakConflict(FailureReason):
    code: ClassVar[str] = "break_conflict"

    break_window: str

    @property
    def message(self) -> str:
        return f"Conflicts with a configured break ({self.break_window})."


@dataclass(frozen=True)
class BookingConflict(FailureReason):
    code: ClassVar[str] = "booking_conflict"

    existing: str
    buffer_only: bool = False
    buffer_minutes: int = 0
    available_from: Optional[str] = None

    @property
    def message(self) -> str:
        if self.buffer_only:
            return (
                f"Slot already booked ({self.existing}): a {self.buffer_minutes}-minute "
                f"buffer is required after each booking, the next booking can start "
                f"at {self.available_from}."
            )
        return f"Slot already booked ({self.existing})."


class ConflictChecker:
    """Validates one candidate ``[date, start, end)`` against a court's state."""

    def __init__(self, tenant_timezone: str, display_timezone: Optional[str] = None):
        self.tenant_timezone = tenant_timezone
        self.display_timezone = display_timezone or tenant_timezone

    def check(
        self,
        resolver: AvailabilityResolver,
        day: date,
        start: Union[str, time],
        end: Union[str, time],
        bookings: ExistingBookingSet,
        exclude_user_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[FailureReason]:
        """
        Check a proposed booking.

        Args:
            resolver: Rules of the court
            day: Local date of the booking start, in the tenant's timezone
            start: Local start time (HH:MM)
            end: Local end time (HH:MM), earlier than start for overnight
            bookings: Non-cancelled bookings around the date
            exclude_user_id: Requesting user, enables the sequential bypass
            exclude_booking_id: Booking being edited

        Returns:
            None when available, otherwise the first failure found
        """
        rule = resolver.resolve(day)
        if rule is None:
            return NoOperatingHours(day=day)

        if not rule.is_available:
            return CourtUnavailable(day=day)

        window = rule.anchored_window(day, self.tenant_timezone)
        candidate = rule.anchor_request(day, start, end, self.tenant_timezone)
        if not window.contains(candidate) or candidate.minutes <= 0:
            return OutsideOperatingHours(window=window.format(self.display_timezone))

        for _, brk in rule.anchored_breaks(day, self.tenant_timezone):
            if candidate.overlaps(brk):
                return BreakConflict(break_window=brk.format(self.display_timezone))

        collisions = bookings.collisions(candidate, exclude_booking_id, exclude_user_id)
        if collisions:
            # A real overlap is reported before a buffer-only one.
            collision = min(collisions, key=lambda c: (c.buffer_only, c.booking.interval.start))
            logger.debug(f"Candidate {candidate} collides with booking {collision.booking.id}")
            return BookingConflict(
                existing=collision.booking.interval.format(self.display_timezone),
                buffer_only=collision.buffer_only,
                buffer_minutes=bookings.buffer_minutes,
                available_from=format_hhmm(collision.blocked.end, self.display_timezone),
            )

        return None

"""Slot generation.

Tiles a governing rule's window into fixed-length slots, skipping anything
that collides with a break or with a buffered existing booking.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from app.core.exceptions import ConfigurationError
from app.services.existing_bookings import ExistingBookingSet
from app.services.rules import AvailabilityRule
from app.services.time_window import Interval
from app.services.timezone_bridge import format_hhmm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    """A bookable interval rendered as HH:MM in the display timezone."""

    start: str
    end: str
    interval: Interval

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


class SlotGenerator:
    """Walks a rule's window in ``interval_minutes`` steps.

    On a collision the cursor jumps to the end of the furthest colliding
    break or buffered booking instead of stepping by one interval, and always
    moves forward by at least ``min_advance_minutes`` so that zero-length or
    overlapping bookings cannot stall the walk.
    """

    def __init__(
        self,
        interval_minutes: int,
        tenant_timezone: str,
        display_timezone: Optional[str] = None,
        min_advance_minutes: int = 1,
    ):
        if not interval_minutes or interval_minutes <= 0:
            raise ConfigurationError(f"Invalid slot interval of {interval_minutes} minutes")
        self.step = timedelta(minutes=interval_minutes)
        self.min_advance = timedelta(minutes=max(1, min_advance_minutes))
        self.tenant_timezone = tenant_timezone
        self.display_timezone = display_timezone or tenant_timezone

    def generate(
        self,
        rule: Optional[AvailabilityRule],
        day: date,
        bookings: ExistingBookingSet,
        exclude_booking_id: Optional[int] = None,
        exclude_user_id: Optional[int] = None,
        not_before: Optional[datetime] = None,
    ) -> List[Slot]:
        """
        Generate the bookable slots of ``day`` under ``rule``.

        Args:
            rule: Governing rule, or None when the date is closed
            day: Local calendar date in the tenant's timezone
            bookings: Non-cancelled bookings around the date
            exclude_booking_id: Booking to ignore (the one being edited)
            exclude_user_id: Requesting user, enables the sequential bypass
            not_before: Drop slots starting before this instant

        Returns:
            Ordered, non-overlapping slots
        """
        if rule is None or not rule.is_available:
            return []

        window = rule.anchored_window(day, self.tenant_timezone)
        breaks = [interval for _, interval in rule.anchored_breaks(day, self.tenant_timezone)]

        slots = []
        cursor = window.start
        while cursor + self.step <= window.end:
            candidate = Interval(cursor, cursor + self.step)
            blocked_until = self._blocked_until(
                candidate, breaks, bookings, exclude_booking_id, exclude_user_id
            )

            if blocked_until is not None:
                logger.debug(f"Slot at {candidate.start.isoformat()} blocked until {blocked_until.isoformat()}")
                cursor = max(blocked_until, cursor + self.min_advance)
                continue

            if not_before is None or candidate.start >= not_before:
                slots.append(self._render(candidate))
            cursor = candidate.end

        return slots

    def _blocked_until(
        self,
        candidate: Interval,
        breaks: List[Interval],
        bookings: ExistingBookingSet,
        exclude_booking_id: Optional[int],
        exclude_user_id: Optional[int],
    ) -> Optional[datetime]:
        ends = [brk.end for brk in breaks if candidate.overlaps(brk)]
        for collision in bookings.collisions(candidate, exclude_booking_id, exclude_user_id):
            # Past the buffer even when the bypass shortened the block.
            ends.append(collision.booking.interval.end + bookings.buffer)
        return max(ends) if ends else None

    def _render(self, interval: Interval) -> Slot:
        return Slot(
            start=format_hhmm(interval.start, self.display_timezone),
            end=format_hhmm(interval.end, self.display_timezone),
            interval=interval,
        )

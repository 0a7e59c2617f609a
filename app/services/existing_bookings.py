"""Existing bookings relevant to slot generation and conflict checks."""
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Iterator, List, Optional

from app.core.exceptions import ConfigurationError
from app.models.booking import ACTIVE_STATUSES
from app.services.time_window import Interval, parse_time
from app.services.timezone_bridge import from_utc_parts


@dataclass(frozen=True)
class ExistingBooking:
    """A non-cancelled booking as an absolute UTC interval."""

    id: Optional[int]
    user_id: Optional[int]
    interval: Interval

    @classmethod
    def from_record(cls, booking) -> "ExistingBooking":
        start = from_utc_parts(booking.start_date, parse_time(booking.start_time))
        end = from_utc_parts(booking.end_date or booking.start_date, parse_time(booking.end_time))
        if end < start and (booking.end_date is None or booking.end_date == booking.start_date):
            # Legacy rows stored the start date on both ends.
            end += timedelta(days=1)
        return cls(id=booking.id, user_id=booking.user_id, interval=Interval(start, end))


@dataclass(frozen=True)
class Collision:
    """A candidate interval colliding with an existing booking.

    ``blocked`` is the interval the booking actually blocks for this
    candidate: the booking itself plus the buffer, or without the buffer when
    the sequential bypass applies. ``buffer_only`` is set when the candidate
    only touches the buffer and not the booking itself.
    """

    booking: ExistingBooking
    blocked: Interval
    buffer_only: bool


class ExistingBookingSet:
    """Bookings around a date, with the court type's post-booking buffer."""

    def __init__(self, bookings: Iterable[ExistingBooking] = (), buffer_minutes: int = 0):
        if buffer_minutes is None or buffer_minutes < 0:
            raise ConfigurationError(f"Invalid buffer of {buffer_minutes} minutes")
        self.buffer = timedelta(minutes=buffer_minutes)
        self._bookings = sorted(bookings, key=lambda b: (b.interval.start, b.interval.end))

    @classmethod
    def from_records(cls, records, buffer_minutes: int = 0) -> "ExistingBookingSet":
        """Build the set from ``Booking`` rows, skipping cancelled ones."""
        return cls(
            (ExistingBooking.from_record(r) for r in records if r.status in ACTIVE_STATUSES),
            buffer_minutes,
        )

    @property
    def buffer_minutes(self) -> int:
        return int(self.buffer.total_seconds() // 60)

    def __iter__(self) -> Iterator[ExistingBooking]:
        return iter(self._bookings)

    def __len__(self) -> int:
        return len(self._bookings)

    @staticmethod
    def is_sequential(candidate: Interval, booking: ExistingBooking, user_id: Optional[int]) -> bool:
        """Same user and perfectly adjacent intervals, to the minute."""
        if user_id is None or booking.user_id != user_id:
            return False
        return candidate.start == booking.interval.end or candidate.end == booking.interval.start

    def collisions(
        self,
        candidate: Interval,
        exclude_booking_id: Optional[int] = None,
        exclude_user_id: Optional[int] = None,
    ) -> List[Collision]:
        """Return every booking whose buffered interval overlaps the candidate."""
        found = []
        for booking in self._bookings:
            if exclude_booking_id is not None and booking.id == exclude_booking_id:
                continue

            if self.is_sequential(candidate, booking, exclude_user_id):
                blocked = booking.interval
            else:
                blocked = Interval(booking.interval.start, booking.interval.end + self.buffer)

            if not candidate.overlaps(blocked):
                continue

            found.append(
                Collision(
                    booking=booking,
                    blocked=blocked,
                    buffer_only=not candidate.overlaps(booking.interval),
                )
            )
        return found

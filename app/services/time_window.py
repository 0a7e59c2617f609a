"""Local time windows and absolute intervals."""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Union

from app.core.exceptions import ConfigurationError
from app.services import timezone_bridge

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) value to a minute-precision time.

    Raises:
        ConfigurationError: if the value is not a valid wall-clock time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        match = _TIME_RE.match(value.strip())
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return time(hour, minute)
    raise ConfigurationError(f"Cannot parse time value {value!r}")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class Interval:
    """Absolute half-open interval ``[start, end)`` between aware instants."""

    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def format(self, tz_name: str) -> str:
        return (
            f"{timezone_bridge.format_hhmm(self.start, tz_name)}-"
            f"{timezone_bridge.format_hhmm(self.end, tz_name)}"
        )


@dataclass(frozen=True)
class TimeWindow:
    """Local wall-clock window ``[start, end)``.

    A window whose end is earlier than its start runs overnight into the
    following day.
    """

    start: time
    end: time

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time]) -> "TimeWindow":
        return cls(parse_time(start), parse_time(end))

    @property
    def is_overnight(self) -> bool:
        return self.end < self.start

    @property
    def minutes(self) -> int:
        start, end = self._span()
        return end - start

    def _span(self, offset: int = 0):
        start = _minutes(self.start) + offset
        end = _minutes(self.end) + offset
        if self.is_overnight:
            end += MINUTES_PER_DAY
        return start, end

    def _offset_within(self, outer: "TimeWindow") -> int:
        # Times before an overnight window's start belong to its second day.
        if outer.is_overnight and self.start < outer.start:
            return MINUTES_PER_DAY
        return 0

    def overlaps(self, other: "TimeWindow") -> bool:
        start, end = self._span()
        other_start, other_end = other._span(other._offset_within(self))
        return start < other_end and end > other_start

    def contains(self, other: "TimeWindow") -> bool:
        start, end = self._span()
        other_start, other_end = other._span(other._offset_within(self))
        return start <= other_start and other_end <= end

    def anchor(self, day: date, tz_name: str) -> Interval:
        """Place the window on a calendar date in tz_name and return it in UTC."""
        end_day = day + timedelta(days=1) if self.is_overnight else day
        return Interval(
            timezone_bridge.local_to_utc(day, self.start, tz_name),
            timezone_bridge.local_to_utc(end_day, self.end, tz_name),
        )

    def anchor_within(self, outer: "TimeWindow", day: date, tz_name: str) -> Interval:
        """Anchor relative to an enclosing window opened on ``day``."""
        if self._offset_within(outer):
            day = day + timedelta(days=1)
        return self.anchor(day, tz_name)

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

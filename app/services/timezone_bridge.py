"""Timezone bridge.

Converts between three frames of reference:

- the tenant's local wall clock, in which operating hours and breaks are
  authored;
- UTC, in which bookings are stored as a calendar date plus a wall-clock time;
- a display timezone, used to render times back to whoever asked.

Every function here is pure instant arithmetic over the pytz database. A
conversion that crosses midnight moves the calendar date with it.
"""
from datetime import date, datetime, time
from typing import Optional, Tuple

import pytz

from app.core.exceptions import ConfigurationError

UTC = pytz.UTC


def get_timezone(tz_name: str) -> pytz.BaseTzInfo:
    """Return the pytz zone for an IANA name, or raise ConfigurationError."""
    if not tz_name:
        raise ConfigurationError("Empty timezone identifier")
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigurationError(f"Unknown timezone '{tz_name}'") from e


def resolve_display_timezone(*candidates: Optional[str], default: str = "UTC") -> str:
    """Return the first non-empty timezone name among the candidates.

    Callers pass them in priority order: an explicit request parameter, the
    acting user's stored timezone, then the tenant's timezone.
    """
    for candidate in candidates:
        if candidate:
            get_timezone(candidate)
            return candidate
    get_timezone(default)
    return default


def local_to_utc(day: date, local_time: time, tz_name: str) -> datetime:
    """Convert a wall-clock (date, time) in tz_name to an aware UTC instant."""
    tz = get_timezone(tz_name)
    local = tz.localize(datetime.combine(day, local_time))
    return local.astimezone(UTC)


def utc_to_local(instant: datetime, tz_name: str) -> datetime:
    """Convert an instant to an aware datetime in tz_name.

    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = UTC.localize(instant)
    return instant.astimezone(get_timezone(tz_name))


def utc_parts(instant: datetime) -> Tuple[date, time]:
    """Split an instant into the UTC (date, time) pair used for storage."""
    as_utc = utc_to_local(instant, "UTC")
    return as_utc.date(), as_utc.time().replace(tzinfo=None)


def from_utc_parts(day: date, utc_time: time) -> datetime:
    """Rebuild an aware UTC instant from a stored (date, time) pair."""
    return UTC.localize(datetime.combine(day, utc_time.replace(tzinfo=None)))


def local_parts(instant: datetime, tz_name: str) -> Tuple[date, time]:
    """Return the wall-clock (date, time) of an instant in tz_name."""
    local = utc_to_local(instant, tz_name)
    return local.date(), local.time().replace(tzinfo=None)


def reframe(day: date, local_time: time, from_tz: str, to_tz: str) -> Tuple[date, time]:
    """Re-express a wall-clock (date, time) from one zone in another."""
    if from_tz == to_tz:
        return day, local_time
    return local_parts(local_to_utc(day, local_time, from_tz), to_tz)


def format_hhmm(instant: datetime, tz_name: str) -> str:
    """Render an instant as HH:MM in tz_name."""
    return utc_to_local(instant, tz_name).strftime("%H:%M")

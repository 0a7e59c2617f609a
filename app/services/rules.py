"""Availability rules and governing-rule resolution.

A rule describes when a court (or every court of a court type) is open:
either on one specific date or on a recurring weekday, as a local
``TimeWindow`` with optional breaks. For any (court, date) pair exactly one
rule governs, or none and the date is closed.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import pytz

from app.core.exceptions import ConfigurationError
from app.services.time_window import Interval, TimeWindow

logger = logging.getLogger(__name__)


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Weekday"]:
        if value is None or value == "":
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown weekday '{value}'") from e


def parse_breaks(raw: Any) -> Tuple[TimeWindow, ...]:
    """Parse the stored JSON list of breaks.

    Accepts ``None`` (no breaks) or a list of ``{"start", "end"}`` mappings.

    Raises:
        ConfigurationError: on any other shape or an unparseable time
    """
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigurationError(f"Breaks must be a list, got {type(raw).__name__}")

    breaks = []
    for item in raw:
        if not isinstance(item, dict) or "start" not in item or "end" not in item:
            raise ConfigurationError(f"Malformed break entry {item!r}")
        breaks.append(TimeWindow.parse(item["start"], item["end"]))
    breaks.sort(key=lambda b: (b.start, b.end))
    return tuple(breaks)


@dataclass(frozen=True)
class AvailabilityRule:
    """One operating-hours record, detached from the database."""

    window: TimeWindow
    breaks: Tuple[TimeWindow, ...] = ()
    is_available: bool = True
    weekday: Optional[Weekday] = None
    specific_date: Optional[date] = None
    court_id: Optional[int] = None
    court_type_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        for brk in self.breaks:
            if brk.minutes <= 0 or not self.window.contains(brk):
                raise ConfigurationError(f"Break {brk} is not inside operating hours {self.window}")

    @classmethod
    def from_record(cls, record) -> "AvailabilityRule":
        """Build a rule from a ``CourtAvailability`` row."""
        if record.specific_date is None and not record.day_of_week_recurring:
            raise ConfigurationError(
                f"Availability {record.id} has neither a specific date nor a weekday"
            )
        return cls(
            window=TimeWindow.parse(record.start_time, record.end_time),
            breaks=parse_breaks(record.breaks),
            is_available=bool(record.is_available),
            weekday=Weekday.parse(record.day_of_week_recurring),
            specific_date=record.specific_date,
            court_id=record.court_id,
            court_type_id=record.court_type_id,
            id=record.id,
            created_at=record.created_at,
        )

    @property
    def is_specific(self) -> bool:
        return self.specific_date is not None

    def applies_to(self, day: date) -> bool:
        if self.is_specific:
            return self.specific_date == day
        return self.weekday == Weekday.for_date(day)

    def anchored_window(self, day: date, tz_name: str) -> Interval:
        return self.window.anchor(day, tz_name)

    def anchored_breaks(self, day: date, tz_name: str) -> List[Tuple[TimeWindow, Interval]]:
        """Breaks placed on the timeline of the window opened on ``day``."""
        return [(brk, brk.anchor_within(self.window, day, tz_name)) for brk in self.breaks]

    def anchor_request(
        self,
        day: date,
        start: Union[str, time],
        end: Union[str, time],
        tz_name: str,
    ) -> Interval:
        """Place a requested local ``[start, end)`` on this rule's timeline."""
        return TimeWindow.parse(start, end).anchor_within(self.window, day, tz_name)


def _recency_key(rule: AvailabilityRule):
    created = rule.created_at
    if created is None:
        created = datetime.min
    elif created.tzinfo is not None:
        created = created.astimezone(pytz.UTC).replace(tzinfo=None)
    return created, rule.id or 0


def _most_recent(rules: Sequence[AvailabilityRule]) -> AvailabilityRule:
    if len(rules) > 1:
        logger.debug(f"Found {len(rules)} candidate rules, using the most recently created")
    return max(rules, key=_recency_key)


class AvailabilityResolver:
    """Selects the governing rule for a court on a date.

    The court's own rules are used when it has any; otherwise the court
    type's rules apply. The two scopes are never merged. Within the chosen
    scope a specific-date rule beats a recurring weekday rule, and among
    several rows for the same date or weekday the most recently created one
    wins.
    """

    def __init__(
        self,
        court_rules: Iterable[AvailabilityRule],
        court_type_rules: Iterable[AvailabilityRule] = (),
    ):
        court_rules = list(court_rules)
        if court_rules:
            self.scope = "court"
            self.rules = court_rules
        else:
            self.scope = "court_type"
            self.rules = list(court_type_rules)

    @classmethod
    def from_records(cls, court_records, court_type_records=()) -> "AvailabilityResolver":
        return cls(
            [AvailabilityRule.from_record(r) for r in court_records],
            [AvailabilityRule.from_record(r) for r in court_type_records],
        )

    def resolve(self, day: date) -> Optional[AvailabilityRule]:
        """Return the governing rule for ``day``, or None when closed."""
        specific = [r for r in self.rules if r.is_specific and r.specific_date == day]
        if specific:
            return _most_recent(specific)

        weekday = Weekday.for_date(day)
        recurring = [r for r in self.rules if not r.is_specific and r.weekday == weekday]
        if recurring:
            return _most_recent(recurring)

        return None

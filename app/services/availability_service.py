"""Availability service: loads court state and runs the engine over it."""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.models.availability_rule import CourtAvailability
from app.models.booking import Booking, ACTIVE_STATUSES
from app.models.court import Court
from app.models.user import User
from app.schemas.availability import (
    AvailableDatesResponse,
    CourtAvailabilityInDB,
    CourtSlotsResponse,
    EffectiveAvailabilityResponse,
    SlotSchema,
)
from app.services.conflict_checker import ConflictChecker, FailureReason
from app.services.existing_bookings import ExistingBookingSet
from app.services.rules import AvailabilityResolver
from app.services.slot_generator import SlotGenerator
from app.services.timezone_bridge import reframe, resolve_display_timezone
from app.services.time_window import Interval, TimeWindow, parse_time

logger = logging.getLogger(__name__)


@dataclass
class CourtContext:
    """Everything the engine needs about one court, loaded once."""

    court: Court
    tenant_timezone: str
    interval_minutes: int
    buffer_minutes: int
    resolver: AvailabilityResolver
    rule_records: Sequence[CourtAvailability]


class AvailabilityService:
    """Service exposing slot listing, date listing and conflict checks."""

    async def load_context(
        self,
        db: AsyncSession,
        tenant_id: int,
        court_id: int,
        lock: bool = False,
    ) -> CourtContext:
        """
        Load a court with its court type, tenant and effective rules.

        Args:
            db: Database session
            tenant_id: Tenant owning the court
            court_id: Court ID
            lock: Hold a row lock on the court until the transaction ends

        Returns:
            Court context

        Raises:
            ValueError: If the court does not exist for this tenant
        """
        query = (
            select(Court)
            .where(and_(Court.id == court_id, Court.tenant_id == tenant_id))
            .options(selectinload(Court.court_type), selectinload(Court.tenant))
        )
        if lock:
            query = query.with_for_update()

        result = await db.execute(query)
        court = result.scalar_one_or_none()

        if not court:
            raise ValueError(f"Court {court_id} not found")

        court_records, court_type_records = await self._get_rule_records(db, court)
        court_type = court.court_type

        return CourtContext(
            court=court,
            tenant_timezone=court.tenant.timezone or settings.DEFAULT_TIMEZONE,
            interval_minutes=court_type.interval_time_minutes,
            buffer_minutes=court_type.buffer_time_minutes or 0,
            resolver=AvailabilityResolver.from_records(court_records, court_type_records),
            rule_records=court_records or court_type_records,
        )

    async def _get_rule_records(
        self, db: AsyncSession, court: Court
    ) -> Tuple[List[CourtAvailability], List[CourtAvailability]]:
        """(court rules, court type rules); the latter are only loaded when the court has none."""
        result = await db.execute(
            select(CourtAvailability)
            .where(CourtAvailability.court_id == court.id)
            .order_by(CourtAvailability.id)
        )
        court_records = list(result.scalars().all())
        if court_records:
            return court_records, []

        result = await db.execute(
            select(CourtAvailability)
            .where(
                and_(
                    CourtAvailability.court_type_id == court.court_type_id,
                    CourtAvailability.court_id.is_(None),
                )
            )
            .order_by(CourtAvailability.id)
        )
        return [], list(result.scalars().all())

    async def load_bookings(
        self,
        db: AsyncSession,
        context: CourtContext,
        first_day: date,
        last_day: date,
    ) -> ExistingBookingSet:
        """Active bookings that may touch the local days first_day..last_day.

        UTC dates are widened by one day on each side to catch bookings that
        spill over a day boundary after conversion.
        """
        result = await db.execute(
            select(Booking).where(
                and_(
                    Booking.court_id == context.court.id,
                    Booking.status.in_(ACTIVE_STATUSES),
                    Booking.start_date <= last_day + timedelta(days=1),
                    Booking.end_date >= first_day - timedelta(days=1),
                )
            )
        )
        return ExistingBookingSet.from_records(result.scalars().all(), context.buffer_minutes)

    async def display_timezone(
        self,
        db: AsyncSession,
        context: CourtContext,
        timezone: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> str:
        """Explicit timezone, else the user's stored timezone, else the tenant's."""
        user_timezone = None
        if not timezone and user_id is not None:
            user = await db.get(User, user_id)
            if not user:
                raise ValueError(f"User {user_id} not found")
            user_timezone = user.timezone

        return resolve_display_timezone(
            timezone, user_timezone, context.tenant_timezone, default=settings.DEFAULT_TIMEZONE
        )

    def _generator(self, context: CourtContext, display_timezone: str) -> SlotGenerator:
        return SlotGenerator(
            interval_minutes=context.interval_minutes,
            tenant_timezone=context.tenant_timezone,
            display_timezone=display_timezone,
            min_advance_minutes=settings.MIN_CURSOR_ADVANCE_MINUTES,
        )

    async def get_slots(
        self,
        db: AsyncSession,
        tenant_id: int,
        court_id: int,
        day: date,
        exclude_booking_id: Optional[int] = None,
        user_id: Optional[int] = None,
        timezone: Optional[str] = None,
        not_before: Optional[datetime] = None,
    ) -> CourtSlotsResponse:
        """
        List the bookable slots of a court on a local date.

        Args:
            db: Database session
            tenant_id: Tenant ID
            court_id: Court ID
            day: Date in the tenant's timezone
            exclude_booking_id: Booking to ignore (when editing it)
            user_id: Acting user, enables the sequential bypass and provides
                the default display timezone
            timezone: Explicit display timezone
            not_before: Hide slots starting before this instant

        Returns:
            Slots rendered in the display timezone
        """
        context = await self.load_context(db, tenant_id, court_id)
        display_tz = await self.display_timezone(db, context, timezone, user_id)
        bookings = await self.load_bookings(db, context, day, day)

        rule = context.resolver.resolve(day)
        slots = self._generator(context, display_tz).generate(
            rule,
            day,
            bookings,
            exclude_booking_id=exclude_booking_id,
            exclude_user_id=user_id,
            not_before=not_before,
        )

        return CourtSlotsResponse(
            court_id=court_id,
            date=day,
            timezone=display_tz,
            interval_minutes=context.interval_minutes,
            buffer_minutes=context.buffer_minutes,
            slots=[SlotSchema(**slot.to_dict()) for slot in slots],
            count=len(slots),
        )

    async def get_available_dates(
        self,
        db: AsyncSession,
        tenant_id: int,
        court_id: int,
        start_date: date,
        end_date: date,
        exclude_booking_id: Optional[int] = None,
        user_id: Optional[int] = None,
        not_before: Optional[datetime] = None,
    ) -> AvailableDatesResponse:
        """
        List the dates of a range that have at least one bookable slot.

        Args:
            db: Database session
            tenant_id: Tenant ID
            court_id: Court ID
            start_date: First local date (inclusive)
            end_date: Last local date (inclusive)
            exclude_booking_id: Booking to ignore
            user_id: Acting user, enables the sequential bypass
            not_before: Hide slots starting before this instant

        Returns:
            Available dates
        """
        context = await self.load_context(db, tenant_id, court_id)
        bookings = await self.load_bookings(db, context, start_date, end_date)
        generator = self._generator(context, context.tenant_timezone)

        dates = []
        current_date = start_date
        while current_date <= end_date:
            slots = generator.generate(
                context.resolver.resolve(current_date),
                current_date,
                bookings,
                exclude_booking_id=exclude_booking_id,
                exclude_user_id=user_id,
                not_before=not_before,
            )
            if slots:
                dates.append(current_date)
            current_date += timedelta(days=1)

        return AvailableDatesResponse(
            court_id=court_id,
            start_date=start_date,
            end_date=end_date,
            dates=dates,
            count=len(dates),
        )

    async def check_conflict(
        self,
        db: AsyncSession,
        tenant_id: int,
        court_id: int,
        day: date,
        start_time: Union[str, time],
        end_time: Union[str, time],
        user_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
        timezone: Optional[str] = None,
        context: Optional[CourtContext] = None,
    ) -> Optional[FailureReason]:
        """
        Check whether a proposed booking may be made.

        When ``timezone`` is given, the date and times are read in that zone
        and re-expressed in the tenant's zone before checking.

        Returns:
            None when the slot is available, otherwise the failure reason
        """
        if context is None:
            context = await self.load_context(db, tenant_id, court_id)

        day, start, end = self.to_tenant_frame(context, day, start_time, end_time, timezone)
        display_tz = await self.display_timezone(db, context, timezone, user_id)
        bookings = await self.load_bookings(db, context, day, day + timedelta(days=1))

        checker = ConflictChecker(context.tenant_timezone, display_tz)
        reason = checker.check(
            context.resolver,
            day,
            start,
            end,
            bookings,
            exclude_user_id=user_id,
            exclude_booking_id=exclude_booking_id,
        )
        if reason is not None:
            logger.debug(
                f"Court {court_id} on {day} {start:%H:%M}-{end:%H:%M} rejected: {reason.code}"
            )
        return reason

    def to_tenant_frame(
        self,
        context: CourtContext,
        day: date,
        start_time: Union[str, time],
        end_time: Union[str, time],
        timezone: Optional[str] = None,
    ):
        """Return (date, start, end) in the tenant's timezone."""
        start = parse_time(start_time)
        end = parse_time(end_time)
        if not timezone or timezone == context.tenant_timezone:
            return day, start, end

        local_day, local_start = reframe(day, start, timezone, context.tenant_timezone)
        end_day = day + timedelta(days=1) if end <= start else day
        _, local_end = reframe(end_day, end, timezone, context.tenant_timezone)
        return local_day, local_start, local_end

    def candidate_interval(
        self, context: CourtContext, day: date, start: time, end: time
    ) -> Interval:
        """Absolute interval of a tenant-local request, placed as the checker places it."""
        rule = context.resolver.resolve(day)
        if rule is not None:
            return rule.anchor_request(day, start, end, context.tenant_timezone)
        return TimeWindow(start, end).anchor(day, context.tenant_timezone)

    async def get_effective_availability(
        self, db: AsyncSession, tenant_id: int, court_id: int
    ) -> EffectiveAvailabilityResponse:
        """Rules governing a court: its own, or its court type's."""
        context = await self.load_context(db, tenant_id, court_id)
        return EffectiveAvailabilityResponse(
            court_id=court_id,
            scope=context.resolver.scope,
            rules=[CourtAvailabilityInDB.model_validate(r) for r in context.rule_records],
        )


# Singleton instance
availability_service = AvailabilityService()

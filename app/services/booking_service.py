"""Booking service: conflict-checked writes of bookings.

Every write runs the conflict check and the insert/update in one
transaction while holding a row lock on the court, and the partial unique
index on bookings rejects whatever slips through, so two concurrent
requests cannot both commit the same slot.
"""
import logging
import math
from datetime import date, time
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BookingNotEditable, BookingRejected
from app.models.booking import Booking, BookingStatus
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.booking import BookingBatchResponse, BookingCreate, BookingInDB, BookingUpdate, TimeRange
from app.services.availability_service import AvailabilityService, CourtContext, availability_service
from app.services.conflict_checker import BookingConflict
from app.services.time_window import MINUTES_PER_DAY, parse_time
from app.services.timezone_bridge import from_utc_parts, local_parts, resolve_display_timezone, utc_parts

logger = logging.getLogger(__name__)

Block = List[Tuple[time, time]]


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def group_slots_into_blocks(slots: Sequence[TimeRange], buffer_minutes: int = 0) -> List[Block]:
    """
    Group requested slots into contiguous blocks.

    Two consecutive slots share a block when the first ends exactly where the
    second starts, or when the gap between them equals the buffer.

    Args:
        slots: Requested slots (HH:MM strings)
        buffer_minutes: Court type buffer

    Returns:
        Blocks of (start, end) pairs, in start order
    """
    parsed = sorted((parse_time(s.start), parse_time(s.end)) for s in slots)
    if not parsed:
        return []

    blocks = [[parsed[0]]]
    for start, end in parsed[1:]:
        previous_end = blocks[-1][-1][1]
        gap = (_minutes(start) - _minutes(previous_end)) % MINUTES_PER_DAY
        if gap == 0 or (buffer_minutes > 0 and gap == buffer_minutes):
            blocks[-1].append((start, end))
        else:
            blocks.append([(start, end)])
    return blocks


class BookingService:
    """Service for creating, updating and cancelling bookings."""

    def __init__(self, availability: AvailabilityService = availability_service):
        self.availability = availability

    async def _get_booking(self, db: AsyncSession, tenant_id: int, booking_id: int) -> Booking:
        result = await db.execute(
            select(Booking).where(and_(Booking.id == booking_id, Booking.tenant_id == tenant_id))
        )
        booking = result.scalar_one_or_none()

        if not booking:
            raise ValueError(f"Booking {booking_id} not found")

        return booking

    async def _get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise ValueError(f"User {user_id} not found")
        return user

    def _price(self, context: CourtContext, minutes: int, slot_count: Optional[int]) -> int:
        court_type = context.court.court_type
        if slot_count is None:
            slot_count = math.ceil(minutes / context.interval_minutes)
        return (court_type.price_per_interval or 0) * slot_count

    def _blocks(
        self,
        context: CourtContext,
        start_time: Optional[str],
        end_time: Optional[str],
        slots: Optional[Sequence[TimeRange]],
    ) -> List[Tuple[time, time, Optional[int]]]:
        """Requested (start, end, slot_count) triples in the request's frame."""
        if slots:
            return [
                (block[0][0], block[-1][1], len(block))
                for block in group_slots_into_blocks(slots, context.buffer_minutes)
            ]
        return [(parse_time(start_time), parse_time(end_time), None)]

    async def _write_block(
        self,
        db: AsyncSession,
        context: CourtContext,
        booking: Booking,
        day: date,
        start: time,
        end: time,
        slot_count: Optional[int],
        request_timezone: Optional[str],
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        """Check one block and, when free, write it onto ``booking``."""
        local_day, local_start, local_end = self.availability.to_tenant_frame(
            context, day, start, end, request_timezone
        )

        reason = await self.availability.check_conflict(
            db,
            context.court.tenant_id,
            context.court.id,
            local_day,
            local_start,
            local_end,
            user_id=booking.user_id,
            exclude_booking_id=exclude_booking_id,
            context=context,
        )
        if reason is not None:
            logger.warning(
                f"Booking rejected on court {context.court.id} "
                f"{local_day} {local_start:%H:%M}-{local_end:%H:%M}: {reason.message}"
            )
            raise BookingRejected(reason)

        interval = self.availability.candidate_interval(context, local_day, local_start, local_end)
        booking.court_id = context.court.id
        booking.start_date, booking.start_time = utc_parts(interval.start)
        booking.end_date, booking.end_time = utc_parts(interval.end)
        booking.price = self._price(context, interval.minutes, slot_count)

        db.add(booking)
        await db.flush()

    async def _display_timezone(
        self, db: AsyncSession, booking: Booking, timezone: Optional[str] = None
    ) -> str:
        tenant = await db.get(Tenant, booking.tenant_id)
        user = await db.get(User, booking.user_id)
        return resolve_display_timezone(
            timezone,
            user.timezone if user else None,
            tenant.timezone if tenant else None,
            default=settings.DEFAULT_TIMEZONE,
        )

    async def to_schema(
        self, db: AsyncSession, booking: Booking, timezone: Optional[str] = None
    ) -> BookingInDB:
        """Booking with its UTC fields and the local view in the display timezone."""
        display_tz = await self._display_timezone(db, booking, timezone)
        starts_at = from_utc_parts(booking.start_date, booking.start_time)
        ends_at = from_utc_parts(booking.end_date, booking.end_time)
        local_date, local_start = local_parts(starts_at, display_tz)
        _, local_end = local_parts(ends_at, display_tz)

        return BookingInDB(
            id=booking.id,
            tenant_id=booking.tenant_id,
            court_id=booking.court_id,
            user_id=booking.user_id,
            start_date=booking.start_date,
            start_time=booking.start_time,
            end_date=booking.end_date,
            end_time=booking.end_time,
            price=booking.price,
            status=booking.status,
            timezone=display_tz,
            local_date=local_date,
            local_start_time=local_start.strftime("%H:%M"),
            local_end_time=local_end.strftime("%H:%M"),
            created_at=booking.created_at,
        )

    async def _batch(
        self, db: AsyncSession, bookings: List[Booking], timezone: Optional[str]
    ) -> BookingBatchResponse:
        items = [await self.to_schema(db, booking, timezone) for booking in bookings]
        return BookingBatchResponse(bookings=items, count=len(items))

    async def get_booking(
        self, db: AsyncSession, tenant_id: int, booking_id: int, timezone: Optional[str] = None
    ) -> BookingInDB:
        booking = await self._get_booking(db, tenant_id, booking_id)
        return await self.to_schema(db, booking, timezone)

    async def create_bookings(
        self, db: AsyncSession, tenant_id: int, data: BookingCreate
    ) -> BookingBatchResponse:
        """
        Create one booking per contiguous block of the request.

        Args:
            db: Database session
            tenant_id: Tenant ID
            data: Booking request

        Returns:
            Created bookings

        Raises:
            ValueError: If the court or user does not exist
            BookingRejected: If any block fails the conflict check
        """
        try:
            context = await self.availability.load_context(db, tenant_id, data.court_id, lock=True)
            await self._get_user(db, data.user_id)

            created = []
            for start, end, slot_count in self._blocks(context, data.start_time, data.end_time, data.slots):
                booking = Booking(
                    tenant_id=tenant_id,
                    user_id=data.user_id,
                    status=data.status.value,
                )
                await self._write_block(
                    db, context, booking, data.date, start, end, slot_count, data.timezone
                )
                created.append(booking)

            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise BookingRejected(self._race_conflict(data.start_time, data.end_time, data.slots))
        except Exception:
            await db.rollback()
            raise

        for booking in created:
            await db.refresh(booking)

        logger.info(
            f"Created {len(created)} booking(s) on court {data.court_id} for user {data.user_id}"
        )
        return await self._batch(db, created, data.timezone)

    async def update_booking(
        self, db: AsyncSession, tenant_id: int, booking_id: int, data: BookingUpdate
    ) -> BookingBatchResponse:
        """
        Update a booking.

        Moving it (court, date or times) re-runs the conflict check, ignoring
        the booking's own current reservation. With ``slots``, the first block
        rewrites this booking and every further block becomes a new booking
        of the same user.

        Returns:
            The updated booking first, followed by any booking split off

        Raises:
            ValueError: If the booking or the target court does not exist
            BookingNotEditable: If the booking is cancelled
            BookingRejected: If any block fails the conflict check
        """
        booking = await self._get_booking(db, tenant_id, booking_id)

        if booking.status == BookingStatus.CANCELLED.value:
            raise BookingNotEditable("Cancelled bookings cannot be modified")

        written = [booking]
        try:
            if data.status is not None:
                if data.status == BookingStatus.CANCELLED:
                    raise BookingNotEditable("Use the cancel endpoint to cancel a booking")
                booking.status = data.status.value

            if data.moves_booking:
                court_id = data.court_id or booking.court_id
                context = await self.availability.load_context(db, tenant_id, court_id, lock=True)

                # Unspecified fields keep their current value, read in the
                # frame the request is expressed in.
                frame_tz = data.timezone or context.tenant_timezone
                current_day, current_start = local_parts(
                    from_utc_parts(booking.start_date, booking.start_time), frame_tz
                )
                _, current_end = local_parts(from_utc_parts(booking.end_date, booking.end_time), frame_tz)

                day = data.date or current_day
                blocks = self._blocks(
                    context,
                    data.start_time or current_start.strftime("%H:%M"),
                    data.end_time or current_end.strftime("%H:%M"),
                    data.slots,
                )

                first_start, first_end, first_count = blocks[0]
                await self._write_block(
                    db, context, booking, day, first_start, first_end, first_count,
                    data.timezone, exclude_booking_id=booking.id,
                )

                for start, end, slot_count in blocks[1:]:
                    extra = Booking(
                        tenant_id=tenant_id,
                        user_id=booking.user_id,
                        status=booking.status,
                    )
                    await self._write_block(
                        db, context, extra, day, start, end, slot_count, data.timezone
                    )
                    written.append(extra)

            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise BookingRejected(self._race_conflict(data.start_time, data.end_time, data.slots))
        except Exception:
            await db.rollback()
            raise

        for item in written:
            await db.refresh(item)

        if len(written) > 1:
            logger.info(f"Booking {booking_id} updated and split into {len(written)} bookings")
        else:
            logger.info(f"Booking {booking_id} updated")
        return await self._batch(db, written, data.timezone)

    async def cancel_booking(
        self, db: AsyncSession, tenant_id: int, booking_id: int
    ) -> BookingInDB:
        """Cancel a booking; it stops blocking its slot immediately."""
        booking = await self._get_booking(db, tenant_id, booking_id)

        if booking.status == BookingStatus.CANCELLED.value:
            raise BookingNotEditable("Booking is already cancelled")

        booking.status = BookingStatus.CANCELLED.value
        await db.commit()
        await db.refresh(booking)

        logger.info(f"Booking {booking_id} cancelled")
        return await self.to_schema(db, booking)

    def _race_conflict(
        self,
        start_time: Optional[str],
        end_time: Optional[str],
        slots: Optional[Sequence[TimeRange]],
    ) -> BookingConflict:
        """Conflict reported when the unique index catches a concurrent write."""
        if slots:
            start_time, end_time = slots[0].start, slots[-1].end
        logger.warning("Concurrent booking detected by the active-slot index")
        if start_time and end_time:
            return BookingConflict(existing=f"{start_time}-{end_time}")
        return BookingConflict(existing="requested slot")


# Singleton instance
booking_service = BookingService()

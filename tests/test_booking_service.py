"""Tests for the booking and availability services against SQLite."""

from datetime import date, time

import pytest
from sqlalchemy import select

from app.core.exceptions import BookingNotEditable, BookingRejected, ConfigurationError
from app.models import Booking, CourtAvailability
from app.schemas.booking import BookingCreate, BookingUpdate, TimeRange
from app.services.availability_service import availability_service
from app.services.booking_service import booking_service, group_slots_into_blocks
from app.services.conflict_checker import BookingConflict, OutsideOperatingHours
from tests.factories import MONDAY, TUESDAY


def _create(seeded, start="10:00", end="11:00", user=None, **kwargs):
    return BookingCreate(
        court_id=seeded.court.id,
        user_id=(user or seeded.user).id,
        date=MONDAY,
        start_time=start,
        end_time=end,
        **kwargs,
    )


def _slots(*pairs):
    return [TimeRange(start=start, end=end) for start, end in pairs]


class TestGroupSlotsIntoBlocks:
    def test_contiguous_slots_form_one_block(self):
        blocks = group_slots_into_blocks(_slots(("11:00", "12:00"), ("10:00", "11:00")))
        assert blocks == [[(time(10), time(11)), (time(11), time(12))]]

    def test_gap_equal_to_buffer_is_contiguous(self):
        blocks = group_slots_into_blocks(_slots(("10:00", "11:00"), ("11:15", "12:15")), buffer_minutes=15)
        assert len(blocks) == 1

    def test_other_gaps_split_blocks(self):
        blocks = group_slots_into_blocks(
            _slots(("10:00", "11:00"), ("11:00", "12:00"), ("14:00", "15:00")), buffer_minutes=15
        )
        assert [(b[0][0], b[-1][1]) for b in blocks] == [(time(10), time(12)), (time(14), time(15))]

    def test_empty(self):
        assert group_slots_into_blocks([]) == []


class TestCreateBookings:
    async def test_create_single_booking(self, db, seeded):
        result = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))

        assert result.count == 1
        booking = result.bookings[0]
        assert booking.start_time == time(10, 0)
        assert booking.end_date == MONDAY
        assert booking.price == 1000
        assert booking.local_start_time == "10:00"

    async def test_slots_grouped_into_bookings(self, db, seeded):
        data = BookingCreate(
            court_id=seeded.court.id,
            user_id=seeded.user.id,
            date=MONDAY,
            slots=_slots(("10:00", "11:00"), ("11:00", "12:00"), ("15:00", "16:00")),
        )
        result = await booking_service.create_bookings(db, seeded.tenant.id, data)

        assert result.count == 2
        assert [(b.local_start_time, b.local_end_time, b.price) for b in result.bookings] == [
            ("10:00", "12:00", 2000),
            ("15:00", "16:00", 1000),
        ]

    async def test_rejection_writes_nothing(self, db, seeded):
        data = BookingCreate(
            court_id=seeded.court.id,
            user_id=seeded.user.id,
            date=MONDAY,
            slots=_slots(("10:00", "11:00"), ("21:30", "22:30")),
        )
        with pytest.raises(BookingRejected) as exc_info:
            await booking_service.create_bookings(db, seeded.tenant.id, data)

        assert isinstance(exc_info.value.reason, OutsideOperatingHours)
        rows = (await db.execute(select(Booking))).scalars().all()
        assert rows == []

    async def test_buffer_rejects_other_user(self, db, seeded):
        await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))

        with pytest.raises(BookingRejected) as exc_info:
            await booking_service.create_bookings(
                db, seeded.tenant.id, _create(seeded, "11:00", "12:00", user=seeded.other_user)
            )
        assert exc_info.value.reason.buffer_only

    async def test_sequential_bypass_for_same_user(self, db, seeded):
        await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        result = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded, "11:00", "12:00"))

        assert result.count == 1

    async def test_request_timezone_is_reframed(self, db, make_court):
        seeded = await make_court(tenant_timezone="Europe/Madrid")
        result = await booking_service.create_bookings(
            db, seeded.tenant.id, _create(seeded, "08:00", "09:00", timezone="UTC")
        )

        booking = result.bookings[0]
        assert booking.start_time == time(8, 0)
        assert booking.timezone == "UTC"

        view = await booking_service.get_booking(db, seeded.tenant.id, booking.id)
        assert view.timezone == "Europe/Madrid"
        assert view.local_start_time == "10:00"

    async def test_overnight_booking_stores_next_utc_date(self, db, make_court):
        seeded = await make_court(
            rules=[{"day_of_week_recurring": "monday", "start_time": time(22, 0), "end_time": time(2, 0)}]
        )
        result = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded, "23:00", "01:00"))

        booking = result.bookings[0]
        assert (booking.start_date, booking.end_date) == (MONDAY, TUESDAY)
        assert booking.price == 2000

    async def test_unique_index_catches_concurrent_write(self, db, seeded, monkeypatch):
        async def _always_available(*args, **kwargs):
            return None

        await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        monkeypatch.setattr(booking_service.availability, "check_conflict", _always_available)

        with pytest.raises(BookingRejected) as exc_info:
            await booking_service.create_bookings(
                db, seeded.tenant.id, _create(seeded, user=seeded.other_user)
            )
        assert isinstance(exc_info.value.reason, BookingConflict)

    async def test_unknown_user(self, db, seeded):
        data = BookingCreate(
            court_id=seeded.court.id, user_id=999, date=MONDAY, start_time="10:00", end_time="11:00"
        )
        with pytest.raises(ValueError):
            await booking_service.create_bookings(db, seeded.tenant.id, data)


class TestUpdateBooking:
    async def test_move_ignores_own_reservation(self, db, seeded):
        created = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        booking_id = created.bookings[0].id

        result = await booking_service.update_booking(
            db, seeded.tenant.id, booking_id, BookingUpdate(start_time="10:30", end_time="11:30")
        )
        assert result.bookings[0].local_start_time == "10:30"

    async def test_split_into_new_bookings(self, db, seeded):
        created = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        booking_id = created.bookings[0].id

        result = await booking_service.update_booking(
            db,
            seeded.tenant.id,
            booking_id,
            BookingUpdate(slots=_slots(("10:00", "11:00"), ("11:00", "12:00"), ("14:00", "15:00"))),
        )

        assert result.count == 2
        assert result.bookings[0].id == booking_id
        assert result.bookings[0].local_end_time == "12:00"
        assert result.bookings[1].local_start_time == "14:00"

    async def test_move_into_conflict(self, db, seeded):
        await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded, user=seeded.other_user))
        created = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded, "15:00", "16:00"))

        with pytest.raises(BookingRejected):
            await booking_service.update_booking(
                db,
                seeded.tenant.id,
                created.bookings[0].id,
                BookingUpdate(start_time="10:30", end_time="11:30"),
            )

    async def test_status_only_change_skips_checks(self, db, seeded):
        created = await booking_service.create_bookings(
            db, seeded.tenant.id, _create(seeded, status="pending")
        )
        result = await booking_service.update_booking(
            db, seeded.tenant.id, created.bookings[0].id, BookingUpdate(status="confirmed")
        )
        assert result.bookings[0].status == "confirmed"

    async def test_cancelled_booking_cannot_be_edited(self, db, seeded):
        created = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        booking_id = created.bookings[0].id
        await booking_service.cancel_booking(db, seeded.tenant.id, booking_id)

        with pytest.raises(BookingNotEditable):
            await booking_service.update_booking(
                db, seeded.tenant.id, booking_id, BookingUpdate(start_time="12:00", end_time="13:00")
            )
        with pytest.raises(BookingNotEditable):
            await booking_service.cancel_booking(db, seeded.tenant.id, booking_id)


class TestAvailabilityService:
    async def test_cancel_frees_the_slot(self, db, seeded):
        created = await booking_service.create_bookings(db, seeded.tenant.id, _create(seeded))
        before = await availability_service.get_slots(db, seeded.tenant.id, seeded.court.id, MONDAY)
        assert "10:00" not in [s.start for s in before.slots]

        await booking_service.cancel_booking(db, seeded.tenant.id, created.bookings[0].id)
        after = await availability_service.get_slots(db, seeded.tenant.id, seeded.court.id, MONDAY)
        assert "10:00" in [s.start for s in after.slots]
        assert after.count == 14

    async def test_court_type_rules_apply_without_court_rules(self, db, make_court):
        seeded = await make_court(rules=[])
        db.add(
            CourtAvailability(
                tenant_id=seeded.tenant.id,
                court_type_id=seeded.court_type.id,
                day_of_week_recurring="tuesday",
                start_time=time(9, 0),
                end_time=time(12, 0),
            )
        )
        await db.commit()

        effective = await availability_service.get_effective_availability(db, seeded.tenant.id, seeded.court.id)
        assert effective.scope == "court_type"
        assert [rule.court_type_id for rule in effective.rules] == [seeded.court_type.id]

        dates = await availability_service.get_available_dates(
            db, seeded.tenant.id, seeded.court.id, MONDAY, date(2030, 6, 16)
        )
        assert dates.dates == [TUESDAY, date(2030, 6, 11)]

    async def test_user_timezone_used_for_display(self, db, seeded):
        seeded.user.timezone = "Asia/Tokyo"
        await db.commit()

        response = await availability_service.get_slots(
            db, seeded.tenant.id, seeded.court.id, MONDAY, user_id=seeded.user.id
        )
        assert response.timezone == "Asia/Tokyo"
        assert response.slots[0].start == "17:00"

    async def test_malformed_rule_raises_configuration_error(self, db, make_court):
        seeded = await make_court(
            rules=[
                {
                    "day_of_week_recurring": "monday",
                    "start_time": time(8, 0),
                    "end_time": time(22, 0),
                    "breaks": {"start": "12:00"},
                }
            ]
        )
        with pytest.raises(ConfigurationError):
            await availability_service.get_slots(db, seeded.tenant.id, seeded.court.id, MONDAY)

    async def test_break_outside_hours_raises_configuration_error(self, db, make_court):
        seeded = await make_court(
            rules=[
                {
                    "day_of_week_recurring": "monday",
                    "start_time": time(9, 0),
                    "end_time": time(13, 0),
                    "breaks": [{"start": "12:00", "end": "11:00"}],
                }
            ]
        )
        with pytest.raises(ConfigurationError):
            await availability_service.check_conflict(
                db, seeded.tenant.id, seeded.court.id, MONDAY, "11:00", "12:00"
            )

    async def test_unknown_court(self, db, seeded):
        with pytest.raises(ValueError):
            await availability_service.get_slots(db, seeded.tenant.id, 999, MONDAY)

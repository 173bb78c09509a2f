import datetime as dt

import pytest
from sqlalchemy.exc import IntegrityError

from coachcal.core.errors import (
    AppointmentNotFound,
    CalendarNotFound,
    InvalidTransition,
    OutsideBookingWindow,
    SlotTaken,
)
from coachcal.modules.appointments import service as booking
from coachcal.modules.appointments.models import Appointment
from coachcal.modules.appointments.schemas import BookingCreateRequest
from coachcal.modules.events import AppointmentCancelled, AppointmentConfirmed, AppointmentRequested
from coachcal.modules.scheduling.service import get_availability, get_slots
from coachcal.modules.scheduling.slots import SlotComputer
from tests.conftest import MONDAY, NOW, make_calendar


def req(calendar, time, day=MONDAY, **extra):
    return BookingCreateRequest(calendar_id=calendar.id, date=day, time=time, **extra)


async def slots(session, user, calendar, day=MONDAY, now=NOW):
    return (await get_slots(session, user, calendar.id, day, now)).slots


async def test_request_creates_pending_with_baked_policy(session, calendar, client_user, bus, events):
    appt = await booking.request_booking(session, client_user, req(calendar, dt.time(9)), NOW, bus=bus)

    assert appt.status == "PENDING"
    assert appt.duration_minutes == 30
    assert appt.buffer_minutes == 0
    assert appt.booker_id == client_user.id
    assert appt.booker_email == "client@example.com"
    assert [type(e) for e in events] == [AppointmentRequested]
    assert events[0].appointment_id == appt.id
    assert "09:00" not in await slots(session, client_user, calendar)


async def test_second_request_for_same_slot_is_slot_taken(session_factory, calendar, client_user, bus):
    async with session_factory() as s1:
        await booking.request_booking(s1, client_user, req(calendar, dt.time(9)), NOW, bus=bus)
    async with session_factory() as s2:
        with pytest.raises(SlotTaken):
            await booking.request_booking(s2, client_user, req(calendar, dt.time(9)), NOW, bus=bus)


async def test_stale_slot_list_is_rechecked_at_booking_time(session_factory, calendar, client_user, stranger, coach, bus):
    calendar_public = await make_calendar_public(session_factory, calendar)
    async with session_factory() as reader:
        seen = await slots(reader, client_user, calendar_public)
    assert "10:00" in seen

    async with session_factory() as other:
        await booking.request_booking(other, stranger, req(calendar, dt.time(10)), NOW, bus=bus)

    async with session_factory() as late:
        with pytest.raises(SlotTaken):
            await booking.request_booking(late, client_user, req(calendar, dt.time(10)), NOW, bus=bus)


async def make_calendar_public(session_factory, calendar):
    async with session_factory() as s:
        row = await s.get(type(calendar), calendar.id)
        row.is_public = True
        await s.commit()
        return row


async def test_unique_index_violation_becomes_slot_taken(session_factory, calendar, client_user, bus, monkeypatch):
    async with session_factory() as s1:
        await booking.request_booking(s1, client_user, req(calendar, dt.time(9)), NOW, bus=bus)

    # pretend the in-transaction recheck missed the concurrent insert
    monkeypatch.setattr(SlotComputer, "slots_on_date", lambda self, day, now: [9 * 60])
    async with session_factory() as s2:
        with pytest.raises(SlotTaken):
            await booking.request_booking(s2, client_user, req(calendar, dt.time(9)), NOW, bus=bus)


async def test_partial_unique_index_allows_rebooking_after_cancel(session, calendar, coach, client_user):
    def row(status):
        return Appointment(
            calendar_id=calendar.id,
            coach_id=coach.id,
            booker_id=client_user.id,
            appointment_date=MONDAY,
            start_time=dt.time(9),
            duration_minutes=30,
            buffer_minutes=0,
            status=status,
        )

    session.add(row("CANCELLED"))
    session.add(row("PENDING"))
    await session.commit()

    session.add(row("CONFIRMED"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


async def test_outside_window_is_a_validation_error(session, coach, client_user, bus):
    calendar = await make_calendar(session, coach, min_notice_hours=24, max_advance_days=30)
    monday_now = dt.datetime.combine(MONDAY, dt.time(10))
    with pytest.raises(OutsideBookingWindow):
        await booking.request_booking(session, client_user, req(calendar, dt.time(11)), monday_now, bus=bus)
    with pytest.raises(OutsideBookingWindow):
        await booking.request_booking(
            session, client_user, req(calendar, dt.time(9), day=MONDAY + dt.timedelta(days=35)), monday_now, bus=bus
        )
    with pytest.raises(OutsideBookingWindow):
        await booking.request_booking(
            session, client_user, req(calendar, dt.time(9), day=MONDAY - dt.timedelta(days=7)), monday_now, bus=bus
        )


async def test_off_grid_time_is_slot_taken(session, calendar, client_user, bus):
    with pytest.raises(SlotTaken):
        await booking.request_booking(session, client_user, req(calendar, dt.time(9, 15)), NOW, bus=bus)


async def test_private_calendar_is_hidden_from_unrelated_users(session, calendar, stranger, client_user, bus):
    with pytest.raises(CalendarNotFound):
        await booking.request_booking(session, stranger, req(calendar, dt.time(9)), NOW, bus=bus)
    # the linked client sees it
    assert await slots(session, client_user, calendar)


async def test_confirm_and_cancel_lifecycle(session, calendar, coach, client_user, bus, events):
    appt = await booking.request_booking(session, client_user, req(calendar, dt.time(9)), NOW, bus=bus)

    with pytest.raises(InvalidTransition):
        await booking.confirm_appointment(session, client_user, appt.id, bus=bus)

    confirmed = await booking.confirm_appointment(session, coach, appt.id, bus=bus)
    assert confirmed.status == "CONFIRMED"
    assert confirmed.confirmed_at is not None

    with pytest.raises(InvalidTransition):
        await booking.cancel_appointment(session, client_user, appt.id, "can't make it", bus=bus)
    with pytest.raises(InvalidTransition):
        await booking.confirm_appointment(session, coach, appt.id, bus=bus)

    cancelled = await booking.cancel_appointment(session, coach, appt.id, "coach ill", bus=bus)
    assert cancelled.status == "CANCELLED"
    assert cancelled.cancellation_reason == "coach ill"
    assert cancelled.cancelled_at is not None

    with pytest.raises(InvalidTransition):
        await booking.cancel_appointment(session, coach, appt.id, bus=bus)

    assert [type(e) for e in events] == [AppointmentRequested, AppointmentConfirmed, AppointmentCancelled]
    assert events[-1].reason == "coach ill"
    assert "09:00" in await slots(session, client_user, calendar)


async def test_booker_may_cancel_pending(session, calendar, client_user, bus):
    appt = await booking.request_booking(session, client_user, req(calendar, dt.time(9)), NOW, bus=bus)
    cancelled = await booking.cancel_appointment(session, client_user, appt.id, bus=bus)
    assert cancelled.status == "CANCELLED"
    assert cancelled.cancellation_reason is None


async def test_unrelated_user_cannot_see_or_touch_appointment(session, calendar, client_user, stranger, bus):
    appt = await booking.request_booking(session, client_user, req(calendar, dt.time(9)), NOW, bus=bus)
    with pytest.raises(AppointmentNotFound):
        await booking.get_appointment(session, stranger, appt.id)
    with pytest.raises(AppointmentNotFound):
        await booking.cancel_appointment(session, stranger, appt.id, bus=bus)


async def test_buffer_blocks_neighbours_and_stays_baked_in(session, coach, client_user, bus):
    calendar = await make_calendar(session, coach, buffer_minutes=15)
    appt = await booking.request_booking(session, client_user, req(calendar, dt.time(10)), NOW, bus=bus)
    assert appt.buffer_minutes == 15
    # 09:30 would end inside the 09:45 buffer; the grid restarts at 10:45
    assert await slots(session, client_user, calendar) == ["09:00", "10:45", "11:15"]

    calendar.buffer_minutes = 0
    await session.commit()
    stored = await session.get(Appointment, appt.id)
    assert stored.buffer_minutes == 15
    # the booking keeps its own 15 minutes even though the calendar dropped it
    assert await slots(session, client_user, calendar) == ["09:00", "10:45", "11:15"]


async def test_bookings_block_all_calendars_of_the_coach(session, coach, client_user, bus):
    intro = await make_calendar(session, coach, name="Intro")
    checkin = await make_calendar(session, coach, name="Check-in", slot_duration_minutes=60)
    await booking.request_booking(session, client_user, req(intro, dt.time(10)), NOW, bus=bus)
    assert await slots(session, client_user, checkin) == ["09:00", "10:30"]


async def test_month_view_matches_day_view(session, calendar, client_user, bus):
    for t in (dt.time(9), dt.time(9, 30), dt.time(10), dt.time(10, 30), dt.time(11), dt.time(11, 30)):
        await booking.request_booking(session, client_user, req(calendar, t), NOW, bus=bus)

    view = await get_availability(session, client_user, calendar.id, dt.date(2025, 1, 1), dt.date(2025, 1, 31), NOW)
    assert MONDAY not in view.dates
    assert view.dates == [dt.date(2025, 1, 13), dt.date(2025, 1, 20), dt.date(2025, 1, 27)]
    for day in view.dates:
        assert await slots(session, client_user, calendar, day=day)


async def test_my_bookings_and_coach_agenda(session, calendar, coach, client_user, bus):
    await booking.request_booking(session, client_user, req(calendar, dt.time(11)), NOW, bus=bus)
    await booking.request_booking(session, client_user, req(calendar, dt.time(9)), NOW, bus=bus)
    await booking.request_booking(
        session, client_user, req(calendar, dt.time(9), day=MONDAY + dt.timedelta(days=7)), NOW, bus=bus
    )

    page = await booking.list_my_bookings(session, client_user, None, limit=2, offset=0)
    assert page.total == 3
    assert len(page.items) == 2
    assert page.has_next

    agenda = await booking.list_coach_appointments(session, coach, MONDAY, MONDAY)
    assert [a.start_time for a in agenda] == [dt.time(9), dt.time(11)]

import datetime as dt
import uuid
from types import SimpleNamespace

import pytest

from coachcal.modules.scheduling.blocks import ExceptionSet
from coachcal.modules.scheduling.intervals import TimeInterval, format_hhmm, parse_hhmm
from coachcal.modules.scheduling.reservations import ReservationIndex
from coachcal.modules.scheduling.rules import AvailabilityRuleSet
from coachcal.modules.scheduling.slots import CalendarPolicy, SlotComputer, discretize

COACH = uuid.uuid4()
NOW = dt.datetime(2025, 1, 1, 8, 0)  # Wednesday
MONDAY = dt.date(2025, 1, 6)


def hhmm(slots):
    return [format_hhmm(s) for s in slots]


def computer(*, duration=30, buffer=0, notice=0, advance=60, windows=None, blocks=(), appointments=()):
    policy = CalendarPolicy(
        coach_id=COACH,
        slot_duration=duration,
        buffer=buffer,
        max_advance_days=advance,
        min_notice_hours=notice,
    )
    windows = windows or {0: [TimeInterval(parse_hhmm("09:00"), parse_hhmm("12:00"))]}
    return SlotComputer(
        policy,
        AvailabilityRuleSet.from_windows(windows),
        ExceptionSet(blocks),
        ReservationIndex(appointments),
    )


def confirmed(start, duration=30, buffer=0, day=MONDAY):
    return SimpleNamespace(
        coach_id=COACH,
        appointment_date=day,
        start_time=start,
        duration_minutes=duration,
        buffer_minutes=buffer,
        status="CONFIRMED",
    )


def test_plain_monday_morning():
    assert hhmm(computer().slots_on_date(MONDAY, NOW)) == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]


def test_weekday_without_rules_has_no_slots():
    assert computer().slots_on_date(MONDAY + dt.timedelta(days=1), NOW) == []


def test_all_day_block_removes_everything():
    block = SimpleNamespace(blocked_date=MONDAY, all_day=True, start_time=None, end_time=None)
    assert computer(blocks=[block]).slots_on_date(MONDAY, NOW) == []


def test_partial_block_splits_the_day():
    block = SimpleNamespace(blocked_date=MONDAY, all_day=False, start_time=dt.time(10), end_time=dt.time(10, 45))
    assert hhmm(computer(blocks=[block]).slots_on_date(MONDAY, NOW)) == ["09:00", "09:30", "10:45", "11:15"]


def test_buffered_booking_is_cut_out_and_fragments_restart_the_grid():
    # occupied 09:45-10:45; the tail fragment starts at 10:45.
    # 09:30-10:00 would run into the buffer, and 11:00/11:30 are off the 10:45 grid
    c = computer(buffer=15, appointments=[confirmed(dt.time(10), buffer=15)])
    slots = c.slots_on_date(MONDAY, NOW)
    assert hhmm(slots) == ["09:00", "10:45", "11:15"]
    assert "10:00" not in hhmm(slots) and "10:30" not in hhmm(slots)


def test_slots_lie_inside_free_time():
    c = computer(buffer=15, appointments=[confirmed(dt.time(10), buffer=15)])
    free = c.free_intervals(MONDAY)
    for start in c.slots_on_date(MONDAY, NOW):
        slot = TimeInterval(start, start + 30)
        assert any(fragment.contains(slot) for fragment in free)


def test_remainder_shorter_than_a_slot_is_dropped():
    c = computer(duration=45)
    assert hhmm(c.slots_on_date(MONDAY, NOW)) == ["09:00", "09:45", "10:30", "11:15"]
    c = computer(duration=50)
    assert hhmm(c.slots_on_date(MONDAY, NOW)) == ["09:00", "09:50", "10:40"]


def test_overlapping_rules_do_not_duplicate_slots():
    windows = {0: [TimeInterval(540, 660), TimeInterval(600, 720)]}
    assert hhmm(computer(windows=windows).slots_on_date(MONDAY, NOW)) == [
        "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    ]


def test_min_notice_excludes_near_slots():
    now = dt.datetime.combine(MONDAY, dt.time(10))
    assert computer(notice=24).slots_on_date(MONDAY, now) == []
    # next Monday is more than 24h away
    assert hhmm(computer(notice=24).slots_on_date(MONDAY + dt.timedelta(days=7), now))[0] == "09:00"


def test_min_notice_cuts_inside_a_day():
    now = dt.datetime.combine(MONDAY, dt.time(8, 20))
    assert hhmm(computer(notice=2).slots_on_date(MONDAY, now)) == ["10:30", "11:00", "11:30"]


def test_past_dates_and_beyond_advance_window_are_empty():
    assert computer().slots_on_date(dt.date(2024, 12, 30), NOW) == []
    assert computer(advance=3).slots_on_date(MONDAY, NOW) == []


def test_advance_window_cuts_inside_a_day():
    # now + 5 days lands on Monday 10:00
    now = dt.datetime(2025, 1, 1, 10, 0)
    assert hhmm(computer(advance=5).slots_on_date(MONDAY, now)) == ["09:00", "09:30", "10:00"]


def test_notice_larger_than_advance_means_nothing_bookable():
    assert computer(notice=24 * 10, advance=5).slots_on_date(MONDAY, NOW) == []


def test_repeated_reads_are_identical():
    c = computer(buffer=10, appointments=[confirmed(dt.time(11))])
    assert c.slots_on_date(MONDAY, NOW) == c.slots_on_date(MONDAY, NOW)


def test_month_view_agrees_with_day_view():
    block = SimpleNamespace(blocked_date=MONDAY + dt.timedelta(days=7), all_day=True, start_time=None, end_time=None)
    c = computer(blocks=[block])
    start, end = dt.date(2025, 1, 1), dt.date(2025, 1, 31)
    dates = c.dates_with_availability(start, end, NOW)
    day = start
    while day <= end:
        assert (day in dates) == bool(c.slots_on_date(day, NOW))
        day += dt.timedelta(days=1)
    assert dates == [dt.date(2025, 1, 6), dt.date(2025, 1, 20), dt.date(2025, 1, 27)]


def test_is_bookable():
    c = computer()
    assert c.is_bookable(MONDAY, parse_hhmm("09:30"), NOW)
    assert not c.is_bookable(MONDAY, parse_hhmm("09:15"), NOW)


def test_discretize():
    assert list(discretize(TimeInterval(0, 100), 30)) == [0, 30, 60]
    assert list(discretize(TimeInterval(0, 20), 30)) == []


def test_policy_validation():
    with pytest.raises(ValueError):
        CalendarPolicy(coach_id=COACH, slot_duration=0)
    with pytest.raises(ValueError):
        CalendarPolicy(coach_id=COACH, slot_duration=30, buffer=-5)

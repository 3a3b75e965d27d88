from datetime import date, timedelta

from booking.availability import first_of_next_month
from booking.clock import FixedClock
from booking.service import get_availability, get_lifecycle
from booking.types import NEXT_REASON_LOCKED, NEXT_REASON_NO_SLOT, Program, Slot
from tests.conftest import FRI, MON, SAT, SUN, THU


def _by_date(days):
    return {d.date: d for d in days}


def _close_weekdays(overrides, start, end, keep=()):
    day = start
    while day <= end:
        if day.weekday() < 5 and day not in keep:
            overrides.set(day, False)
        day += timedelta(days=1)


def test_first_of_next_month_rolls_over_year():
    assert first_of_next_month(date(2026, 10, 7)) == date(2026, 11, 1)
    assert first_of_next_month(date(2026, 12, 31)) == date(2027, 1, 1)


class TestSummary:
    def test_default_rules(self, availability):
        days = _by_date(availability.summary(Program.TOUR, date(2026, 10, 7), 6))

        assert len(days) == 7
        assert days[date(2026, 10, 7)].closed  # today
        assert not days[THU].closed
        assert not days[FRI].closed
        assert days[SAT].closed
        assert days[SUN].closed
        assert not days[MON].closed

    def test_negative_horizon_is_empty(self, availability):
        assert availability.summary(Program.TOUR, THU, -1) == []

    def test_pending_blocks_the_whole_day(self, availability, book):
        book(THU, Slot.AM)
        d = _by_date(availability.summary(Program.TOUR, THU, 0))[THU]
        assert (d.am_open, d.pm_open, d.closed) == (False, False, True)

    def test_booked_blocks_only_its_slot(self, availability, book):
        book(THU, Slot.AM, confirm=True)
        d = _by_date(availability.summary(Program.TOUR, THU, 0))[THU]
        assert (d.am_open, d.pm_open, d.closed) == (False, True, False)
        assert d.bookable_slots == [Slot.PM]

    def test_canceled_frees_the_day(self, availability, lifecycle, book):
        r = book(THU, Slot.AM, confirm=True)
        lifecycle.cancel(r.id)
        d = _by_date(availability.summary(Program.TOUR, THU, 0))[THU]
        assert d.bookable_slots == [Slot.AM, Slot.PM]

    def test_full_day_booking_blocks_both_halves(self, availability, book):
        book(THU, Slot.FULL, confirm=True, program=Program.EXPERIENCE)
        d = _by_date(availability.summary(Program.EXPERIENCE, THU, 0))[THU]
        assert (d.am_open, d.pm_open, d.closed) == (False, False, True)

    def test_other_program_does_not_block(self, availability, book):
        book(THU, Slot.AM, confirm=True, program=Program.EXPERIENCE)
        d = _by_date(availability.summary(Program.TOUR, THU, 0))[THU]
        assert d.bookable_slots == [Slot.AM, Slot.PM]

    def test_configured_closed_dates(self, make_app):
        make_app(CLOSED_DATES=("2026-10-08",))
        d = _by_date(get_availability().summary(Program.TOUR, THU, 0))[THU]
        assert d.closed


class TestOverrides:
    def test_open_override_opens_a_weekend(self, availability, overrides):
        overrides.set(SAT, True)
        d = _by_date(availability.summary(Program.TOUR, SAT, 0))[SAT]
        assert not d.closed
        assert d.override is True

    def test_closed_override_closes_a_weekday(self, availability, overrides):
        overrides.set(FRI, False)
        d = _by_date(availability.summary(Program.TOUR, FRI, 0))[FRI]
        assert d.closed
        assert d.override is False

    def test_override_cannot_open_today(self, availability, overrides):
        today = date(2026, 10, 7)
        overrides.set(today, True)
        assert _by_date(availability.summary(Program.TOUR, today, 0))[today].closed

    def test_open_override_with_every_slot_busy_is_closed(self, availability, overrides, book):
        overrides.set(SAT, True)
        book(SAT, Slot.AM)  # pending: whole day busy
        assert _by_date(availability.summary(Program.TOUR, SAT, 0))[SAT].closed

    def test_both_slots_booked_per_slot_granularity(self, make_app):
        make_app(RESERVATION_EXCLUSIVITY="slot")
        lifecycle = get_lifecycle()
        for slot in (Slot.AM, Slot.PM):
            created = lifecycle.create(Program.TOUR, THU, slot, {})
            lifecycle.verify(created.reservation.id, created.verify_token)

        d = _by_date(get_availability().summary(Program.TOUR, THU, 0))[THU]
        assert d.closed

    def test_clear_returns_to_defaults(self, availability, overrides):
        overrides.set(SAT, True)
        assert overrides.clear(SAT)
        assert not overrides.clear(SAT)
        assert _by_date(availability.summary(Program.TOUR, SAT, 0))[SAT].closed


class TestPublishingLock:
    def test_next_month_hidden_until_cutoff(self, make_app):
        make_app(clock=FixedClock.at_local(2026, 10, 10))
        days = _by_date(get_availability().summary(Program.TOUR, date(2026, 10, 30), 3))

        assert not days[date(2026, 10, 30)].closed
        nov2 = days[date(2026, 11, 2)]
        assert nov2.closed and nov2.locked

    def test_allow_next_month_lifts_the_lock(self, make_app):
        make_app(clock=FixedClock.at_local(2026, 10, 10))
        nov2 = _by_date(get_availability().summary(Program.TOUR, date(2026, 11, 2), 0, allow_next_month=True))
        d = nov2[date(2026, 11, 2)]
        assert not d.closed and not d.locked

    def test_lock_lifts_after_cutoff_day(self, make_app):
        make_app(clock=FixedClock.at_local(2026, 10, 26))
        d = _by_date(get_availability().summary(Program.TOUR, date(2026, 11, 2), 0))[date(2026, 11, 2)]
        assert not d.closed and not d.locked

    def test_lock_covers_later_months_too(self, make_app):
        make_app(clock=FixedClock.at_local(2026, 10, 10))
        d = _by_date(get_availability().summary(Program.TOUR, date(2026, 12, 1), 0))[date(2026, 12, 1)]
        assert d.locked


class TestNextOpen:
    def test_tomorrow_morning_by_default(self, availability):
        result = availability.next_open(Program.TOUR)
        assert result.found
        assert (result.date, result.slot) == (THU, Slot.AM)

    def test_finds_the_only_open_day_in_the_horizon(self, availability, overrides):
        only = date(2026, 10, 20)
        _close_weekdays(overrides, THU, date(2026, 12, 6), keep=(only,))

        result = availability.next_open(Program.TOUR, allow_next_month=True)
        assert (result.date, result.slot) == (only, Slot.AM)

    def test_falls_back_to_pm(self, availability, overrides, book):
        only = date(2026, 10, 20)
        _close_weekdays(overrides, THU, date(2026, 12, 6), keep=(only,))
        book(only, Slot.AM, confirm=True)

        result = availability.next_open(Program.TOUR, allow_next_month=True)
        assert (result.date, result.slot) == (only, Slot.PM)

    def test_not_found_reason_when_lock_applied(self, availability, overrides, book):
        only = date(2026, 10, 20)
        _close_weekdays(overrides, THU, date(2026, 12, 6), keep=(only,))
        book(only, Slot.AM)

        locked = availability.next_open(Program.TOUR)
        assert not locked.found
        assert locked.reason == NEXT_REASON_LOCKED

        unlocked = availability.next_open(Program.TOUR, allow_next_month=True)
        assert unlocked.reason == NEXT_REASON_NO_SLOT

    def test_next_month_reached_only_when_allowed(self, make_app, overrides):
        make_app(clock=FixedClock.at_local(2026, 10, 10))
        _close_weekdays(overrides, date(2026, 10, 11), date(2026, 10, 31))
        engine = get_availability()

        assert not engine.next_open(Program.TOUR).found
        result = engine.next_open(Program.TOUR, allow_next_month=True)
        assert (result.date, result.slot) == (date(2026, 11, 2), Slot.AM)

    def test_debug_lists_skip_reasons(self, availability, overrides, book):
        overrides.set(THU, False)
        book(FRI, Slot.AM)
        result = availability.next_open(Program.TOUR, debug=True)

        assert (result.date, result.slot) == (MON, Slot.AM)
        assert result.skips == [
            {"date": "2026-10-08", "reason": "closed"},
            {"date": "2026-10-09", "reason": "fully-busy"},
            {"date": "2026-10-10", "reason": "closed"},
            {"date": "2026-10-11", "reason": "closed"},
        ]

"""
Which days and slots are offered, and what is the next bookable slot.

Day-level rules, each later one overriding the earlier:

  1. weekdays open, weekends (and configured closed dates) closed
  2. dates inside the lead time closed
  3. an AvailabilityOverride row, when present, decides open/closed
  4. publishing lock: until the cutoff day of the month, everything from
     the first of next month on is hidden unless allow_next_month

Today and past dates are closed whatever the rules say.

Occupancy is folded in afterwards. Any pending reservation blocks the
whole day; a booked one blocks only the slots it overlaps. A day with
every slot busy is closed even if an override opened it.
"""
from collections import defaultdict
from datetime import date, timedelta

from booking import time_window
from booking.overrides import OverrideStore
from booking.policy import BookingPolicy
from booking.store import ReservationStore
from booking.types import (
    DaySummary,
    NEXT_REASON_LOCKED,
    NEXT_REASON_NO_SLOT,
    NextResult,
    Slot,
    Status,
)


def first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


class AvailabilityEngine:
    def __init__(self, store: ReservationStore, overrides: OverrideStore, clock, policy: BookingPolicy = None):
        self.store = store
        self.overrides = overrides
        self.clock = clock
        self.policy = policy or BookingPolicy()

    def lock_active(self, today: date) -> bool:
        return today.day <= self.policy.publish_cutoff_day

    def summary(self, program, from_date: date, horizon_days: int, allow_next_month: bool = False):
        """One DaySummary per date in [from_date, from_date + horizon_days]."""
        if horizon_days < 0:
            return []
        today = self.clock.today()
        end_date = from_date + timedelta(days=horizon_days)

        overrides = self.overrides.between(from_date, end_date)
        busy, pending_days = self._occupancy(program, from_date, end_date)

        lock = self.lock_active(today) and not allow_next_month
        lock_from = first_of_next_month(today)

        days = []
        for offset in range(horizon_days + 1):
            day = from_date + timedelta(days=offset)
            override = overrides.get(day)
            closed = self._closed_by_policy(day, today, override)

            locked = lock and day >= lock_from
            if locked:
                closed = True

            if day in pending_days:
                am_busy = pm_busy = True
            else:
                am_busy = Slot.AM in busy[day]
                pm_busy = Slot.PM in busy[day]

            days.append(DaySummary(
                date=day,
                am_open=not am_busy,
                pm_open=not pm_busy,
                closed=closed or (am_busy and pm_busy),
                locked=locked,
                override=override,
            ))
        return days

    def next_open(self, program, allow_next_month: bool = False, debug: bool = False) -> NextResult:
        today = self.clock.today()
        horizon = self.policy.next_horizon_days
        # today is never offered; scan tomorrow .. today + horizon
        days = self.summary(program, today + timedelta(days=1), horizon - 1, allow_next_month)

        skips = []
        for d in days:
            slots = d.bookable_slots
            if slots:
                return NextResult(found=True, program=program, date=d.date, slot=slots[0], skips=skips)
            if debug:
                skips.append({"date": d.date.isoformat(), "reason": self._skip_reason(d)})

        reason = NEXT_REASON_LOCKED if (self.lock_active(today) and not allow_next_month) else NEXT_REASON_NO_SLOT
        return NextResult(found=False, program=program, reason=reason, skips=skips)

    # ---------- internals ----------
    def _closed_by_policy(self, day: date, today: date, override) -> bool:
        closed = day.weekday() in self.policy.closed_weekdays or day in self.policy.closed_dates

        if day < today + timedelta(days=self.policy.lead_days):
            closed = True

        if override is not None:
            closed = not override

        if day <= today:
            closed = True
        return closed

    def _occupancy(self, program, start: date, end: date):
        busy = defaultdict(set)
        pending_days = set()
        for day, slot, status in self.store.active_between(program, start, end):
            if status is Status.PENDING:
                pending_days.add(day)
            busy[day].update(time_window.overlapping(program, slot))
        return busy, pending_days

    @staticmethod
    def _skip_reason(d: DaySummary) -> str:
        if d.locked:
            return "locked-next-month"
        if not d.am_open and not d.pm_open:
            return "fully-busy"
        return "closed"

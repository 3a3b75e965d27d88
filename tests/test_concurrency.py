"""
Many threads against one SQLite file. Each worker pushes its own app
context, so each gets its own session and connection.
"""
import threading
from datetime import timedelta
from concurrent.futures import ThreadPoolExecutor

from booking.service import get_lifecycle, get_reaper
from booking.types import Outcome, Program, Slot, Status
from models.reservation import Reservation
from tests.conftest import THU

WORKERS = 50


def _run_together(app, fn, n):
    barrier = threading.Barrier(n)

    def worker(i):
        with app.app_context():
            barrier.wait()
            return fn(i)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(worker, range(n)))


def test_concurrent_creates_same_day_one_winner(app):
    outcomes = _run_together(
        app,
        lambda i: get_lifecycle().create(Program.TOUR, THU, Slot.AM if i % 2 else Slot.PM, {}).outcome,
        WORKERS,
    )

    assert outcomes.count(Outcome.OK) == 1
    assert outcomes.count(Outcome.SLOT_TAKEN) == WORKERS - 1
    assert Reservation.query.filter_by(date=THU).count() == 1


def test_concurrent_creates_per_slot_one_winner_each(make_app):
    app = make_app(RESERVATION_EXCLUSIVITY="slot")
    outcomes = _run_together(
        app,
        lambda i: get_lifecycle().create(Program.TOUR, THU, Slot.AM if i % 2 else Slot.PM, {}).outcome,
        WORKERS,
    )

    assert outcomes.count(Outcome.OK) == 2
    rows = Reservation.query.filter_by(date=THU).all()
    assert sorted(r.slot.value for r in rows) == ["am", "pm"]


def test_concurrent_verify_books_once(app, lifecycle):
    created = lifecycle.create(Program.TOUR, THU, Slot.AM, {})
    rid, token = created.reservation.id, created.verify_token

    results = _run_together(app, lambda i: get_lifecycle().verify(rid, token), 10)

    assert sum(1 for r in results if r.changed) == 1
    assert all(r.outcome in (Outcome.OK, Outcome.ALREADY_FINAL) for r in results)
    assert lifecycle.store.get(rid).status is Status.BOOKED


def test_verify_racing_expiry_sweep_resolves_once(app, lifecycle, clock):
    ids = []
    tokens = {}
    for offset in range(8):
        created = lifecycle.create(Program.TOUR, THU + timedelta(days=offset), Slot.AM, {})
        ids.append(created.reservation.id)
        tokens[created.reservation.id] = created.verify_token

    clock.advance(minutes=61)

    def race(i):
        if i == 0:
            return ("sweep", get_reaper().expire_sweep())
        rid = ids[i - 1]
        return ("verify", get_lifecycle().verify(rid, tokens[rid]))

    results = _run_together(app, race, len(ids) + 1)

    sweep = next(r for kind, r in results if kind == "sweep")
    verifies = [r for kind, r in results if kind == "verify"]
    assert all(v.outcome in (Outcome.EXPIRED, Outcome.ALREADY_FINAL) for v in verifies)
    assert sweep.changed + sum(1 for v in verifies if v.changed) == len(ids)

    for rid in ids:
        r = lifecycle.store.get(rid)
        assert r.status is Status.CANCELED
        assert r.canceled_at is not None

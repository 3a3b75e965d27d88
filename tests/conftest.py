"""
Pytest configuration and fixtures.

Every test gets its own SQLite file (threads in the concurrency tests need
real connections, not a shared in-memory one) and a FixedClock pinned to
Wednesday 2026-10-07 09:00 in Tokyo unless it asks for another instant.

October 2026 for reference:
    Mon  5  12  19  26
    Tue  6  13  20  27
    Wed  7  14  21  28
    Thu  8  15  22  29
    Fri  9  16  23  30
    Sat 10  17  24  31
    Sun 11  18  25
November 1 2026 is a Sunday.
"""
from datetime import date

import pytest

from app import create_app
from booking.clock import FixedClock
from booking.types import Program, Slot
from config import TestConfig
from models import db


@pytest.fixture
def clock():
    return FixedClock.at_local(2026, 10, 7, 9, 0)


@pytest.fixture
def make_app(tmp_path, clock):
    """Build an app with config overrides; pushes its app context."""
    contexts = []

    def _make(clock=clock, **overrides):
        attrs = {"SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / f"test_{len(contexts)}.db")}
        attrs.update(overrides)
        config = type("_TestConfig", (TestConfig,), attrs)

        app = create_app(config, clock=clock)
        ctx = app.app_context()
        ctx.push()
        db.create_all()
        contexts.append(ctx)
        return app

    yield _make

    for ctx in reversed(contexts):
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def lifecycle(app):
    from booking.service import get_lifecycle
    return get_lifecycle()


@pytest.fixture
def availability(app):
    from booking.service import get_availability
    return get_availability()


@pytest.fixture
def overrides(app):
    from booking.overrides import OverrideStore
    return OverrideStore()


@pytest.fixture
def book(lifecycle):
    """Create (and optionally confirm) a tour reservation; returns the row."""
    def _book(day, slot=Slot.AM, confirm=False, program=Program.TOUR, **profile):
        result = lifecycle.create(program, day, slot, profile or {"email": "guest@example.com"})
        assert result.ok, result
        if confirm:
            verified = lifecycle.verify(result.reservation.id, result.verify_token)
            assert verified.changed
            return verified.reservation
        return result.reservation
    return _book


THU = date(2026, 10, 8)
FRI = date(2026, 10, 9)
SAT = date(2026, 10, 10)
SUN = date(2026, 10, 11)
MON = date(2026, 10, 12)

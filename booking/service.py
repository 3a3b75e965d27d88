from flask import current_app

from booking.availability import AvailabilityEngine
from booking.clock import Clock
from booking.lifecycle import LifecycleManager
from booking.overrides import OverrideStore
from booking.policy import BookingPolicy
from booking.reaper import ExpiryReaper
from booking.store import ReservationStore


def init_booking(app, clock=None):
    """Attach the clock and policy to the app. Tests pass a FixedClock."""
    policy = BookingPolicy.from_config(app.config)
    app.extensions["booking_policy"] = policy
    app.extensions["booking_clock"] = clock or Clock(policy.timezone)


def get_policy() -> BookingPolicy:
    return current_app.extensions["booking_policy"]


def get_clock() -> Clock:
    return current_app.extensions["booking_clock"]


def get_lifecycle() -> LifecycleManager:
    return LifecycleManager(ReservationStore(), get_clock(), get_policy(), OverrideStore())


def get_availability() -> AvailabilityEngine:
    return AvailabilityEngine(ReservationStore(), OverrideStore(), get_clock(), get_policy())


def get_reaper() -> ExpiryReaper:
    return ExpiryReaper(get_lifecycle())

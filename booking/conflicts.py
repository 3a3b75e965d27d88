"""
Maps storage errors to booking outcomes.

Double booking is prevented by the partial unique index on active
reservations, not by checking first. Whatever the backend, a lost race
surfaces as an IntegrityError on commit; this module decides whether that
error is the exclusivity index firing (SlotTaken) or something else.
"""
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from booking.types import StorageUnavailable


EXCLUSIVITY_INDEX = "uq_reservations_active"

UNIQUE_VIOLATION_SQLSTATE = "23505"

_UNIQUE_PATTERNS = (
    "duplicate key value violates unique constraint",  # postgresql
    "unique constraint failed",                        # sqlite
    "duplicate entry",                                 # mysql
    EXCLUSIVITY_INDEX,
)


def _constraint_name(orig) -> str:
    diag = getattr(orig, "diag", None)
    if diag is not None:
        return getattr(diag, "constraint_name", "") or ""
    return ""


def is_slot_taken(exc) -> bool:
    if not isinstance(exc, IntegrityError):
        return False

    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION_SQLSTATE:
        return True
    if _constraint_name(orig) == EXCLUSIVITY_INDEX:
        return True

    message = f"{orig or ''} {exc}".lower()
    return any(pattern in message for pattern in _UNIQUE_PATTERNS)


def is_storage_unavailable(exc) -> bool:
    return isinstance(exc, (OperationalError, DisconnectionError, PoolTimeoutError))


def as_storage_unavailable(exc) -> StorageUnavailable:
    return StorageUnavailable(f"Storage unavailable: {exc.__class__.__name__}", original=exc)

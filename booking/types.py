"""
Closed value sets and result records shared by the booking engine.

Everything entering the engine is already one of these enums; the parse_*
helpers at the bottom are the single place where outside spellings
("cancelled", "AM", " Tour ") are folded into them.
"""
import enum
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


class Program(str, enum.Enum):
    TOUR = "tour"
    EXPERIENCE = "experience"


class Slot(str, enum.Enum):
    AM = "am"
    PM = "pm"
    FULL = "full"


class Status(str, enum.Enum):
    PENDING = "pending"
    BOOKED = "booked"
    DONE = "done"
    CANCELED = "canceled"


# rows in these states hold the exclusivity key
ACTIVE_STATUSES = (Status.PENDING, Status.BOOKED)
FINAL_STATUSES = (Status.DONE, Status.CANCELED)


class Outcome(str, enum.Enum):
    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    SLOT_TAKEN = "slot_taken"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    ALREADY_FINAL = "already_final"
    INVALID_TRANSITION = "invalid_transition"
    NOT_FOUND = "not_found"


class StorageUnavailable(Exception):
    """The store could not complete an atomic step. Transient; retry upstream."""

    def __init__(self, message="Storage unavailable", original=None):
        super().__init__(message)
        self.original = original


@dataclass
class CreateResult:
    outcome: Outcome
    reservation: Optional[object] = None
    # raw token, handed back once so the caller can build the verify link
    verify_token: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


@dataclass
class TransitionResult:
    outcome: Outcome
    reservation: Optional[object] = None
    changed: bool = False
    already_final: bool = False
    already_verified: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.OK, Outcome.ALREADY_FINAL)


@dataclass
class DaySummary:
    date: date
    am_open: bool
    pm_open: bool
    closed: bool
    locked: bool = False
    override: Optional[bool] = None

    @property
    def bookable_slots(self) -> List[Slot]:
        if self.closed:
            return []
        slots = []
        if self.am_open:
            slots.append(Slot.AM)
        if self.pm_open:
            slots.append(Slot.PM)
        return slots

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "am": self.am_open,
            "pm": self.pm_open,
            "closed": self.closed,
            "locked": self.locked,
            "override": self.override,
        }


NEXT_REASON_LOCKED = "maybe-locked-or-no-slot"
NEXT_REASON_NO_SLOT = "no-slot"


@dataclass
class NextResult:
    found: bool
    program: Program
    date: Optional[date] = None
    slot: Optional[Slot] = None
    reason: Optional[str] = None
    skips: List[dict] = field(default_factory=list)


@dataclass
class SweepReport:
    examined: int = 0
    changed: int = 0
    ids: List[int] = field(default_factory=list)


class ParseError(ValueError):
    pass


def _fold(value) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    if not isinstance(value, str):
        raise ParseError(f"Expected a string, got {type(value).__name__}")
    return value.strip().lower()


def parse_program(value) -> Program:
    folded = _fold(value)
    try:
        return Program(folded)
    except ValueError:
        raise ParseError(f"Unknown program: {value!r}") from None


def parse_slot(value) -> Slot:
    folded = _fold(value)
    try:
        return Slot(folded)
    except ValueError:
        raise ParseError(f"Unknown slot: {value!r}") from None


def parse_status(value) -> Status:
    folded = _fold(value)
    if folded == "cancelled":
        folded = Status.CANCELED.value
    try:
        return Status(folded)
    except ValueError:
        raise ParseError(f"Unknown status: {value!r}") from None

from datetime import datetime, timezone

from models.db import db
from booking.types import Program, Slot, Status
from booking import time_window


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum(enum_cls, length=20):
    # store the lowercase value ("pending"), not the member name
    return db.Enum(
        enum_cls,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        validate_strings=True,
        length=length,
    )


ACTIVE_ROWS = db.text("status IN ('pending', 'booked')")


class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.Date, nullable=False, index=True)
    program = db.Column(_enum(Program), nullable=False, default=Program.TOUR)
    slot = db.Column(_enum(Slot), nullable=False)
    status = db.Column(_enum(Status), nullable=False, default=Status.PENDING, index=True)

    # "day" under per-day exclusivity, the slot name under per-slot
    exclusivity_key = db.Column(db.String(20), nullable=False)

    # naive UTC, always TimeWindow(program, slot, date)
    start_at = db.Column(db.DateTime, nullable=False)
    end_at = db.Column(db.DateTime, nullable=False, index=True)

    # store only hashed token in DB (never store raw token)
    verify_token_hash = db.Column(db.String(128), nullable=True, index=True)
    verify_expires_at = db.Column(db.DateTime, nullable=True, index=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    canceled_at = db.Column(db.DateTime, nullable=True)

    name = db.Column(db.String(191), nullable=False, default="Guest")
    last_name = db.Column(db.String(191), nullable=True)
    first_name = db.Column(db.String(191), nullable=True)
    kana = db.Column(db.String(191), nullable=True)
    email = db.Column(db.String(191), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    contact = db.Column(db.String(191), nullable=True)
    notebook_type = db.Column(db.String(32), nullable=True)
    has_certificate = db.Column(db.Boolean, nullable=False, default=False)
    note = db.Column(db.Text, nullable=True)

    mirror_post_id = db.Column(db.Integer, nullable=True)
    mirror_sync_status = db.Column(db.String(20), nullable=True)  # synced, failed
    mirror_synced_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        # Hard business-rule: one active (pending/booked) row per key (prevents double booking)
        db.Index(
            "uq_reservations_active",
            "program", "date", "exclusivity_key",
            unique=True,
            sqlite_where=ACTIVE_ROWS,
            postgresql_where=ACTIVE_ROWS,
        ),
    )

    PROFILE_FIELDS = (
        "name", "last_name", "first_name", "kana", "email", "phone",
        "contact", "notebook_type", "has_certificate", "note",
    )

    @property
    def is_active(self) -> bool:
        return self.status in (Status.PENDING, Status.BOOKED)

    def place(self, day, slot: Slot, policy):
        """Move the reservation to (day, slot), recomputing everything derived from it."""
        for key, value in placement(self.program, day, slot, policy).items():
            setattr(self, key, value)

    def apply_profile(self, profile: dict):
        for key in self.PROFILE_FIELDS:
            if key in profile:
                setattr(self, key, profile[key])
        self.name = fallback_name(self.name, self.last_name, self.first_name)

    def to_dict(self) -> dict:
        def iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "date": iso(self.date),
            "program": self.program.value,
            "slot": self.slot.value,
            "status": self.status.value,
            "start_at": iso(self.start_at),
            "end_at": iso(self.end_at),
            "verify_expires_at": iso(self.verify_expires_at),
            "verified_at": iso(self.verified_at),
            "canceled_at": iso(self.canceled_at),
            "name": self.name,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "kana": self.kana,
            "email": self.email,
            "phone": self.phone,
            "contact": self.contact,
            "notebook_type": self.notebook_type,
            "has_certificate": bool(self.has_certificate),
            "note": self.note,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


def placement(program, day, slot: Slot, policy) -> dict:
    """Column values for a reservation of `program` sitting at (day, slot)."""
    start_at, end_at = time_window.window(program, slot, day, policy.timezone)
    return {
        "date": day,
        "slot": slot,
        "start_at": start_at,
        "end_at": end_at,
        "exclusivity_key": policy.exclusivity_key(slot),
    }


def fallback_name(name, last_name, first_name) -> str:
    name = (name or "").strip()
    if name and name != "Guest":
        return name
    joined = (last_name or "").strip() + (first_name or "").strip()
    return joined or "Guest"

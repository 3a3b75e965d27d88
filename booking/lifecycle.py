"""
Reservation state machine.

    pending -> booked -> done
       |         |
       +---------+--> canceled

Every transition runs through LifecycleManager._transition: read the row
(row lock where the backend supports it), decide, then write with
``UPDATE ... WHERE status = <what we read>``. If another caller got there
first the write matches nothing, the row is re-read and the decision is
made again against the new state. Request handlers and the reaper use
the same path, so a verify click racing an expiry sweep ends in exactly
one transition.
"""
from sqlalchemy.exc import IntegrityError

from models.reservation import Reservation, fallback_name, placement
from booking import validation
from booking.conflicts import is_slot_taken
from booking.policy import BookingPolicy
from booking.store import ReservationStore
from booking.types import (
    CreateResult,
    FINAL_STATUSES,
    Outcome,
    Status,
    TransitionResult,
)
from security.tokens import issue_token, token_matches


# decide() return values
_KEEP = None


class LifecycleManager:
    def __init__(self, store: ReservationStore, clock, policy: BookingPolicy = None, overrides=None):
        self.store = store
        self.clock = clock
        self.policy = policy or BookingPolicy()
        self.overrides = overrides

    # ---------- create ----------
    def create(self, program, day, slot, profile=None) -> CreateResult:
        errors = validation.validate_slot(program, slot, self.policy.exclusivity)
        errors += validation.validate_date(day, self.clock.today(), self.policy.lead_days, self._override(day))
        clean, profile_errors = validation.validate_profile(profile or {})
        errors += profile_errors
        if errors:
            return CreateResult(Outcome.VALIDATION_ERROR, errors=errors)

        now = self.clock.utcnow()
        raw_token, token_hash = issue_token()

        reservation = Reservation(program=program, status=Status.PENDING, has_certificate=False)
        reservation.place(day, slot, self.policy)
        reservation.apply_profile(clean)
        reservation.verify_token_hash = token_hash
        reservation.verify_expires_at = now + self.policy.verify_grace
        reservation.created_at = now
        reservation.updated_at = now

        try:
            self.store.insert(reservation)
        except IntegrityError as exc:
            if is_slot_taken(exc):
                return CreateResult(Outcome.SLOT_TAKEN)
            raise

        return CreateResult(Outcome.OK, reservation=reservation, verify_token=raw_token)

    # ---------- verify ----------
    def verify(self, reservation_id, token) -> TransitionResult:
        flags = {}

        def decide(r, now):
            flags.clear()
            if r.status is not Status.PENDING:
                return _KEEP
            if not token_matches(token, r.verify_token_hash):
                flags["outcome"] = Outcome.INVALID_TOKEN
                return _KEEP
            if r.verify_expires_at is not None and now > r.verify_expires_at:
                flags["outcome"] = Outcome.EXPIRED
                return self._canceled_values(now)
            return {
                "status": Status.BOOKED,
                "verified_at": now,
                "verify_token_hash": None,
                "verify_expires_at": None,
            }

        result = self._transition(reservation_id, decide)
        if result.outcome is Outcome.NOT_FOUND:
            return result

        if "outcome" in flags:
            result.outcome = flags["outcome"]
            return result

        r = result.reservation
        if not result.changed:
            # someone (the user earlier, an admin, the reaper) already moved it on
            result.outcome = Outcome.ALREADY_FINAL
            result.already_final = r.status in FINAL_STATUSES
            result.already_verified = r.status in (Status.BOOKED, Status.DONE)
        return result

    # ---------- cancel ----------
    def cancel(self, reservation_id) -> TransitionResult:
        def decide(r, now):
            if r.status in FINAL_STATUSES:
                return _KEEP
            if r.status not in (Status.PENDING, Status.BOOKED):
                return _KEEP
            return self._canceled_values(now)

        result = self._transition(reservation_id, decide)
        if result.outcome is Outcome.NOT_FOUND or result.changed:
            return result

        if result.reservation.status in FINAL_STATUSES:
            result.already_final = True
            return result

        result.outcome = Outcome.INVALID_TRANSITION
        result.errors = [f"Cannot cancel a {result.reservation.status.value} reservation"]
        return result

    # ---------- time-driven ----------
    def complete(self, reservation_id) -> TransitionResult:
        def decide(r, now):
            if r.status is Status.BOOKED and r.end_at is not None and r.end_at < now:
                return {"status": Status.DONE}
            return _KEEP

        return self._transition(reservation_id, decide)

    def expire(self, reservation_id) -> TransitionResult:
        def decide(r, now):
            if r.status is not Status.PENDING:
                return _KEEP
            if r.verify_expires_at is not None:
                expired = r.verify_expires_at < now
            else:
                expired = r.created_at < now - self.policy.legacy_pending_grace
            return self._canceled_values(now) if expired else _KEEP

        return self._transition(reservation_id, decide)

    # ---------- reschedule ----------
    def reschedule(self, reservation_id, day=None, slot=None, profile=None) -> TransitionResult:
        """
        Move an active reservation to another date/slot and/or edit its
        profile. Window and exclusivity key are recomputed through
        placement(); the write only lands while the row is still pending or
        booked. Losing the key to another booking leaves the row untouched
        and reports SLOT_TAKEN.
        """
        r = self.store.find_for_update(reservation_id)
        if r is None:
            self.store.release()
            return TransitionResult(Outcome.NOT_FOUND)
        if not r.is_active:
            self.store.release()
            return self._not_editable(r)

        new_day = day or r.date
        new_slot = slot or r.slot
        moved = (new_day, new_slot) != (r.date, r.slot)

        errors = validation.validate_slot(r.program, new_slot, self.policy.exclusivity) if slot else []
        if moved:
            errors += validation.validate_date(
                new_day, self.clock.today(), self.policy.lead_days, self._override(new_day)
            )
        clean, profile_errors = validation.validate_profile(profile or {})
        errors += profile_errors
        if errors:
            self.store.release()
            return TransitionResult(Outcome.VALIDATION_ERROR, reservation=r, errors=errors)

        values = dict(clean)
        if moved:
            values.update(placement(r.program, new_day, new_slot, self.policy))
        values["name"] = fallback_name(
            clean.get("name", r.name),
            clean.get("last_name", r.last_name),
            clean.get("first_name", r.first_name),
        )
        values["updated_at"] = self.clock.utcnow()

        if not self.store.supports_row_locks:
            self.store.release()
        try:
            written = self.store.update_if_active(reservation_id, values)
        except IntegrityError as exc:
            if is_slot_taken(exc):
                return TransitionResult(Outcome.SLOT_TAKEN, reservation=self.store.get(reservation_id))
            raise

        current = self.store.get(reservation_id)
        if not written:
            # canceled or finished between the read and the write
            return self._not_editable(current)
        return TransitionResult(Outcome.OK, reservation=current, changed=True)

    def _not_editable(self, r) -> TransitionResult:
        return TransitionResult(
            Outcome.INVALID_TRANSITION,
            reservation=r,
            errors=[f"Cannot modify a {r.status.value} reservation"],
        )

    # ---------- primitive ----------
    def _override(self, day):
        return self.overrides.get(day) if self.overrides is not None else None

    def _canceled_values(self, now) -> dict:
        return {
            "status": Status.CANCELED,
            "canceled_at": now,
            "verify_token_hash": None,
            "verify_expires_at": None,
        }

    def _transition(self, reservation_id, decide) -> TransitionResult:
        attempts = max(1, self.policy.transition_retries)
        r = None
        for _ in range(attempts):
            r = self.store.find_for_update(reservation_id)
            if r is None:
                self.store.release()
                return TransitionResult(Outcome.NOT_FOUND)

            now = self.clock.utcnow()
            values = decide(r, now)
            if values is _KEEP:
                self.store.release()
                return TransitionResult(Outcome.OK, reservation=r, changed=False)

            observed = r.status
            values.setdefault("updated_at", now)
            if not self.store.supports_row_locks:
                # no lock to hold; the status predicate alone guards the write
                self.store.release()
            if self.store.compare_and_set(reservation_id, observed, values):
                return TransitionResult(Outcome.OK, reservation=self.store.get(reservation_id), changed=True)
            # lost the race: re-read and decide against the new state

        # still contended after every retry; report the state we last saw
        r = self.store.get(reservation_id)
        self.store.release()
        return TransitionResult(Outcome.OK, reservation=r, changed=False)

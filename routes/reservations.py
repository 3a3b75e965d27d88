from datetime import date

from flask import Blueprint, request, jsonify

from booking.service import get_lifecycle
from booking.store import ReservationStore
from booking.types import Outcome, ParseError, Status, parse_program, parse_slot, parse_status
from models.reservation import Reservation
from utils.audit import log_event
from utils.dispatch import fire_and_forget
from utils.mirror import sync_to_mirror
from utils.notifications import build_verify_url, send_verification_message

reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")

DUPLICATE_MESSAGE = "That date is already reserved (pending or confirmed). Please choose another slot."


def _parse_date(value):
    # Expect ISO format like "2026-01-20"
    if not isinstance(value, str):
        raise ParseError("date is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ParseError("Invalid date. Use YYYY-MM-DD") from None


def _profile_from(data: dict) -> dict:
    return {k: data[k] for k in Reservation.PROFILE_FIELDS if k in data}


def _conflict():
    return jsonify(error="duplicate_reservation", message=DUPLICATE_MESSAGE), 409


def _after_change(reservation):
    fire_and_forget(sync_to_mirror, reservation.id)


# ---------- list / show ----------
@reservations_bp.get("")
def list_reservations():
    try:
        day = _parse_date(request.args["date"]) if request.args.get("date") else None
        program = parse_program(request.args["program"]) if request.args.get("program") else None
        slot = parse_slot(request.args["slot"]) if request.args.get("slot") else None
        status = parse_status(request.args["status"]) if request.args.get("status") else None
    except ParseError as e:
        return jsonify(error=str(e)), 400

    rows = ReservationStore().query(day=day, program=program, slot=slot, status=status)
    return jsonify([r.to_dict() for r in rows]), 200


@reservations_bp.get("/<int:reservation_id>")
def show_reservation(reservation_id: int):
    r = ReservationStore().get(reservation_id)
    if not r:
        return jsonify(error="Reservation not found"), 404
    return jsonify(r.to_dict()), 200


# ---------- PUBLIC: create (DOUBLE-BOOKING SAFE) ----------
@reservations_bp.post("")
def create_reservation():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify(error="Validation failed", details=["Request body must be a JSON object"]), 422
    try:
        program = parse_program(data.get("program") or "tour")
        day = _parse_date(data.get("date"))
        slot = parse_slot(data.get("slot") or "")
    except ParseError as e:
        return jsonify(error="Validation failed", details=[str(e)]), 422

    result = get_lifecycle().create(program, day, slot, _profile_from(data))

    if result.outcome is Outcome.VALIDATION_ERROR:
        return jsonify(error="Validation failed", details=result.errors), 422

    if result.outcome is Outcome.SLOT_TAKEN:
        # Partial unique index uq_reservations_active triggers here
        log_event("RESERVATION_FAIL_SLOT_TAKEN", actor="public", entity="reservation",
                  metadata={"program": program.value, "date": day.isoformat(), "slot": slot.value})
        return _conflict()

    r = result.reservation
    snapshot = r.to_dict()
    log_event("RESERVATION_CREATE", actor="public", entity="reservation", entity_id=r.id,
              metadata={"date": snapshot["date"], "slot": snapshot["slot"]})

    fire_and_forget(send_verification_message, snapshot, build_verify_url(r.id, result.verify_token))
    _after_change(r)
    return jsonify(snapshot), 201


# ---------- ADMIN: reschedule / edit ----------
@reservations_bp.patch("/<int:reservation_id>")
def update_reservation(reservation_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify(error="Validation failed", details=["Request body must be a JSON object"]), 422
    try:
        day = _parse_date(data["date"]) if data.get("date") else None
        slot = parse_slot(data["slot"]) if data.get("slot") else None
        status = parse_status(data["status"]) if data.get("status") else None
    except ParseError as e:
        return jsonify(error="Validation failed", details=[str(e)]), 422

    lifecycle = get_lifecycle()

    if status is not None and status is not Status.CANCELED:
        return jsonify(error="Validation failed",
                       details=["status can only be changed to canceled here; confirmation goes through the verify link"]), 422

    profile = _profile_from(data)
    result = None
    if day or slot or profile:
        result = lifecycle.reschedule(reservation_id, day=day, slot=slot, profile=profile)
        if result.outcome is Outcome.NOT_FOUND:
            return jsonify(error="Reservation not found"), 404
        if result.outcome is Outcome.VALIDATION_ERROR:
            return jsonify(error="Validation failed", details=result.errors), 422
        if result.outcome is Outcome.INVALID_TRANSITION:
            return jsonify(error="Reservation not editable", details=result.errors), 409
        if result.outcome is Outcome.SLOT_TAKEN:
            return _conflict()

    if status is Status.CANCELED:
        result = lifecycle.cancel(reservation_id)
        if result.outcome is Outcome.NOT_FOUND:
            return jsonify(error="Reservation not found"), 404

    if result is None:
        return jsonify(error="Nothing to update"), 400

    log_event("RESERVATION_UPDATE", actor="admin", entity="reservation", entity_id=reservation_id,
              metadata={k: v for k, v in data.items() if k in ("date", "slot", "status")})
    if result.changed:
        _after_change(result.reservation)
    return jsonify(result.reservation.to_dict()), 200


# ---------- cancel (releases the slot immediately) ----------
@reservations_bp.patch("/<int:reservation_id>/cancel")
def cancel_reservation(reservation_id: int):
    result = get_lifecycle().cancel(reservation_id)

    if result.outcome is Outcome.NOT_FOUND:
        return jsonify(error="Reservation not found"), 404
    if result.outcome is Outcome.INVALID_TRANSITION:
        return jsonify(error="Reservation not cancellable", details=result.errors), 409

    if result.already_final:
        return jsonify(message="Reservation already finished or canceled.",
                       reservation=result.reservation.to_dict()), 200

    log_event("RESERVATION_CANCEL", actor="admin", entity="reservation", entity_id=reservation_id)
    _after_change(result.reservation)
    return jsonify(message="Reservation canceled and slot reopened.",
                   reservation=result.reservation.to_dict()), 200


# ---------- ADMIN: hard delete (outside the state machine) ----------
@reservations_bp.delete("/<int:reservation_id>")
def delete_reservation(reservation_id: int):
    store = ReservationStore()
    r = store.get(reservation_id)
    if not r:
        return jsonify(error="Reservation not found"), 404

    store.delete(r)
    log_event("RESERVATION_DELETE", actor="admin", entity="reservation", entity_id=reservation_id)
    return "", 204

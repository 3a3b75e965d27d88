from datetime import date

from flask import Blueprint, request, jsonify

from booking.overrides import OverrideStore
from booking.service import get_availability, get_clock
from booking.types import ParseError, parse_program
from utils.audit import log_event

availability_bp = Blueprint("availability", __name__, url_prefix="/api")

MAX_SUMMARY_DAYS = 120


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _parse_day(value: str):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


# ---------- ADMIN: per-day overrides ----------
@availability_bp.get("/availability")
def list_overrides():
    rows = OverrideStore().all()
    return jsonify({d.isoformat(): is_open for d, is_open in rows.items()}), 200


@availability_bp.put("/availability/<date_str>")
def set_override(date_str: str):
    day = _parse_day(date_str)
    if day is None:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 422

    data = request.get_json(silent=True) or {}
    is_open = data.get("open") if isinstance(data, dict) else None
    if not isinstance(is_open, bool):
        return jsonify(error="open (boolean) is required"), 422

    OverrideStore().set(day, is_open)
    log_event("OVERRIDE_SET", actor="admin", entity="availability_override", entity_id=day.isoformat(),
              metadata={"open": is_open})
    return jsonify(date=day.isoformat(), open=is_open), 200


@availability_bp.delete("/availability/<date_str>")
def clear_override(date_str: str):
    day = _parse_day(date_str)
    if day is None:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 422

    if not OverrideStore().clear(day):
        return jsonify(error="No override for that date"), 404
    log_event("OVERRIDE_CLEAR", actor="admin", entity="availability_override", entity_id=day.isoformat())
    return "", 204


# ---------- PUBLIC: calendar summary ----------
@availability_bp.get("/v2/availabilities/summary")
def availability_summary():
    try:
        program = parse_program(request.args.get("program") or "tour")
    except ParseError as e:
        return jsonify(error=str(e)), 400

    from_str = request.args.get("from")
    from_date = _parse_day(from_str) if from_str else get_clock().today()
    if from_date is None:
        return jsonify(error="Invalid from date. Use YYYY-MM-DD"), 400

    days = request.args.get("days", default=60, type=int)
    if days is None or days < 0 or days > MAX_SUMMARY_DAYS:
        return jsonify(error=f"days must be between 0 and {MAX_SUMMARY_DAYS}"), 400

    summary = get_availability().summary(program, from_date, days, allow_next_month=_flag("allowNextMonth"))
    return jsonify(program=program.value, days=[d.to_dict() for d in summary]), 200


# ---------- PUBLIC: next bookable slot ----------
@availability_bp.get("/v2/availabilities/next")
def next_available():
    try:
        program = parse_program(request.args.get("program") or "tour")
    except ParseError as e:
        return jsonify(error=str(e)), 400

    debug = _flag("debug")
    allow_next = _flag("allowNextMonth")
    engine = get_availability()
    result = engine.next_open(program, allow_next_month=allow_next, debug=debug)

    if result.found:
        return jsonify(date=result.date.isoformat(), slot=result.slot.value, program=program.value), 200

    today = get_clock().today()
    sample = engine.summary(program, today, 6, allow_next_month=allow_next)
    return jsonify(
        error="No available slots found",
        reason=result.reason,
        sample=[d.to_dict() for d in sample],
        skips=result.skips if debug else [],
    ), 404

from flask import Blueprint, jsonify

from booking.service import get_clock

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(ok=True, ts=get_clock().now().isoformat()), 200

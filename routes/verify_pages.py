from html import escape

from flask import Blueprint, request

from booking.service import get_lifecycle
from booking.types import Outcome
from utils.audit import log_event
from utils.dispatch import fire_and_forget
from utils.mirror import sync_to_mirror
from utils.notifications import send_confirmation_message

verify_pages_bp = Blueprint("verify_pages", __name__)


def _page(title: str, message: str, status: int = 200):
    return """
    <html>
      <head><meta charset="utf-8"><meta name="robots" content="noindex,nofollow"><title>""" + escape(title) + """</title></head>
      <body style="font-family: system-ui; max-width: 720px; margin: 40px auto; line-height: 1.8;">
        <h1 style="font-size: 1.25rem;">""" + escape(title) + """</h1>
        <p>""" + escape(message) + """</p>
      </body>
    </html>
    """, status, {"Content-Type": "text/html; charset=utf-8"}


@verify_pages_bp.get("/verify/<int:reservation_id>")
def verify_reservation(reservation_id: int):
    token = request.args.get("token")
    result = get_lifecycle().verify(reservation_id, token)

    if result.outcome is Outcome.NOT_FOUND:
        return _page("Invalid link", "This link is not valid. Please make the reservation again.", 404)

    if result.outcome is Outcome.INVALID_TOKEN:
        log_event("RESERVATION_VERIFY_INVALID_TOKEN", actor="public", entity="reservation", entity_id=reservation_id)
        return _page("Invalid link", "This link is not valid. Please make the reservation again.")

    if result.outcome is Outcome.EXPIRED:
        log_event("RESERVATION_VERIFY_EXPIRED", actor="public", entity="reservation", entity_id=reservation_id)
        fire_and_forget(sync_to_mirror, reservation_id)
        return _page("Link expired", "The confirmation link has expired, so the reservation was canceled.")

    if result.outcome is Outcome.ALREADY_FINAL:
        if result.already_verified:
            return _page("Already confirmed", "This reservation has already been confirmed.")
        return _page("Already processed", "This reservation has already been canceled.")

    snapshot = result.reservation.to_dict()
    log_event("RESERVATION_VERIFY", actor="public", entity="reservation", entity_id=reservation_id)
    fire_and_forget(send_confirmation_message, snapshot)
    fire_and_forget(sync_to_mirror, reservation_id)
    return _page("Reservation confirmed", "Thank you. A confirmation email is on its way.")

import logging

from flask import current_app

from utils.emailer import send_email

logger = logging.getLogger(__name__)

SLOT_LABELS = {"am": "Morning", "pm": "Afternoon", "full": "Full day"}


def _describe(reservation: dict) -> str:
    slot = SLOT_LABELS.get(reservation.get("slot"), reservation.get("slot"))
    return f"{reservation.get('date')} {slot} ({reservation.get('program')})"


def build_verify_url(reservation_id: int, token: str) -> str:
    base = (current_app.config.get("PUBLIC_BASE_URL") or "").rstrip("/")
    return f"{base}/verify/{reservation_id}?token={token}"


def send_verification_message(reservation: dict, verify_url: str):
    minutes = current_app.config.get("VERIFY_GRACE_MINUTES", 60)
    body = (
        f"Hello {reservation.get('name') or 'Guest'},\n\n"
        f"We received your reservation request for {_describe(reservation)}.\n"
        f"Please confirm it within {minutes} minutes by opening the link below:\n\n"
        f"{verify_url}\n\n"
        "If you did not make this request, you can ignore this email; "
        "the reservation will be released automatically.\n"
    )
    ok, err = send_email(reservation.get("email"), "Please confirm your reservation", body)
    if not ok:
        logger.warning("Verification mail for reservation %s not sent: %s", reservation.get("id"), err)
    return ok, err


def send_confirmation_message(reservation: dict):
    body = (
        f"Hello {reservation.get('name') or 'Guest'},\n\n"
        f"Your reservation for {_describe(reservation)} is confirmed.\n"
        "We look forward to seeing you.\n"
    )
    ok, err = send_email(reservation.get("email"), "Your reservation is confirmed", body)
    if not ok:
        logger.warning("Confirmation mail for reservation %s not sent: %s", reservation.get("id"), err)
    return ok, err

import json
import logging
import time
from datetime import datetime, timezone

import requests
from flask import current_app

from models import db
from models.reservation import Reservation

logger = logging.getLogger(__name__)


def _payload(r: Reservation) -> dict:
    day = r.date.isoformat() if r.date else None
    return {
        "title": f"{day} {r.slot.value.upper()} {r.last_name or r.name}",
        "status": "publish",
        "meta": {
            "reservation_date": day,
            "reservation_program": r.program.value,
            "reservation_slot": r.slot.value,
            "reservation_status": r.status.value,
            "reservation_last_name": r.last_name,
            "reservation_first_name": r.first_name,
            "reservation_kana": r.kana,
            "reservation_email": r.email,
            "reservation_phone": r.phone,
            "reservation_notebook_type": r.notebook_type,
            "reservation_has_certificate": bool(r.has_certificate),
            "reservation_note": r.note,
            "payload_json": json.dumps(r.to_dict(), ensure_ascii=False),
        },
    }


def _post(url: str, payload: dict):
    auth = None
    user = current_app.config.get("MIRROR_USER")
    password = current_app.config.get("MIRROR_APP_PASSWORD")
    if user and password:
        auth = (user, password)
    timeout = current_app.config.get("MIRROR_TIMEOUT_SECONDS", 10)
    return requests.post(url, json=payload, auth=auth, headers={"Accept": "application/json"}, timeout=timeout)


def sync_to_mirror(reservation_id: int):
    """
    Copy a reservation to the content-mirror site. Retries with the
    configured backoff and records the result on the row; returns
    (ok, error) like send_email.
    """
    base = (current_app.config.get("MIRROR_BASE_URL") or "").rstrip("/")
    if not base:
        return False, "Mirror not configured"

    r = db.session.get(Reservation, reservation_id)
    if r is None:
        return False, "Reservation not found"

    endpoint = (current_app.config.get("MIRROR_ENDPOINT") or "").lstrip("/")
    url = f"{base}/{endpoint}"
    payload = _payload(r)

    max_tries = int(current_app.config.get("MIRROR_MAX_TRIES", 5))
    backoff = list(current_app.config.get("MIRROR_RETRY_BACKOFF", (10, 30, 60, 120, 300)))
    last_error = None

    for attempt in range(max_tries):
        try:
            resp = _post(url, payload)
            if resp.ok:
                body = resp.json() if resp.content else {}
                r.mirror_post_id = body.get("id")
                r.mirror_sync_status = "synced"
                r.mirror_synced_at = datetime.now(timezone.utc).replace(tzinfo=None)
                db.session.commit()
                return True, None
            last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
        except requests.RequestException as exc:
            last_error = str(exc)

        logger.warning("Mirror sync for reservation %s failed (attempt %s/%s): %s",
                       reservation_id, attempt + 1, max_tries, last_error)
        if attempt + 1 < max_tries and backoff:
            time.sleep(backoff[min(attempt, len(backoff) - 1)])

    r.mirror_sync_status = "failed"
    db.session.commit()
    logger.error("Mirror sync for reservation %s gave up: %s", reservation_id, last_error)
    return False, last_error

import requests

from booking.service import get_lifecycle
from booking.types import Program, Slot
from models import db
from models.reservation import Reservation
from tests.conftest import THU
from utils import mirror
from utils.dispatch import fire_and_forget


class _Response:
    def __init__(self, status_code=201, body=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body or {}
        self.content = b"{}" if body is not None else b""
        self.text = str(body)

    def json(self):
        return self._body


def _reservation():
    return get_lifecycle().create(Program.TOUR, THU, Slot.AM, {"last_name": "Sato"}).reservation


def test_not_configured(app):
    r = _reservation()
    assert mirror.sync_to_mirror(r.id) == (False, "Mirror not configured")


def test_successful_sync_records_post_id(app, monkeypatch):
    app.config["MIRROR_BASE_URL"] = "https://mirror.example.com/"
    calls = []

    def _post(url, payload):
        calls.append((url, payload))
        return _Response(201, {"id": 42})

    monkeypatch.setattr(mirror, "_post", _post)
    r = _reservation()

    assert mirror.sync_to_mirror(r.id) == (True, None)
    url, payload = calls[0]
    assert url == "https://mirror.example.com/wp-json/wp/v2/reservation"
    assert payload["title"] == "2026-10-08 AM Sato"
    assert payload["meta"]["reservation_status"] == "pending"

    row = db.session.get(Reservation, r.id)
    assert row.mirror_post_id == 42
    assert row.mirror_sync_status == "synced"


def test_gives_up_after_max_tries(app, monkeypatch):
    app.config["MIRROR_BASE_URL"] = "https://mirror.example.com"
    app.config["MIRROR_MAX_TRIES"] = 3
    attempts = []

    def _post(url, payload):
        attempts.append(url)
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(mirror, "_post", _post)
    r = _reservation()

    ok, err = mirror.sync_to_mirror(r.id)
    assert not ok
    assert "refused" in err
    assert len(attempts) == 3
    assert db.session.get(Reservation, r.id).mirror_sync_status == "failed"


def test_http_error_is_retried(app, monkeypatch):
    app.config["MIRROR_BASE_URL"] = "https://mirror.example.com"
    responses = [_Response(502, {"message": "bad gateway"}), _Response(201, {"id": 7})]
    monkeypatch.setattr(mirror, "_post", lambda url, payload: responses.pop(0))
    r = _reservation()

    assert mirror.sync_to_mirror(r.id) == (True, None)
    assert db.session.get(Reservation, r.id).mirror_post_id == 7


def test_dispatch_swallows_side_effect_failures(app, caplog):
    def boom():
        raise RuntimeError("smtp down")

    fire_and_forget(boom)
    assert "smtp down" in caplog.text

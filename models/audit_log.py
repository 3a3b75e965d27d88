from datetime import datetime, timezone
from models.db import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(80), nullable=True)    # e.g. public, admin, reaper
    action = db.Column(db.String(80), nullable=False)  # e.g. RESERVATION_CREATE, OVERRIDE_SET
    entity = db.Column(db.String(80), nullable=True)   # e.g. reservation, availability_override
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=_utcnow, nullable=False)

from datetime import datetime, timezone
from models.db import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AvailabilityOverride(db.Model):
    __tablename__ = "availability_overrides"

    # one directive per calendar day; no row means "use the default policy"
    date = db.Column(db.Date, primary_key=True)
    open = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

from models.db import db
from models.availability_override import AvailabilityOverride
from booking.conflicts import as_storage_unavailable, is_storage_unavailable


class OverrideStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def _run(self, fn):
        try:
            return fn()
        except Exception as exc:
            if is_storage_unavailable(exc):
                self.session.rollback()
                raise as_storage_unavailable(exc) from exc
            raise

    def get(self, day):
        """True/False when an override exists for `day`, None otherwise."""
        row = self._run(lambda: self.session.get(AvailabilityOverride, day))
        return None if row is None else bool(row.open)

    def between(self, start_day, end_day) -> dict:
        rows = self._run(
            AvailabilityOverride.query
            .filter(AvailabilityOverride.date >= start_day, AvailabilityOverride.date <= end_day)
            .all
        )
        return {r.date: bool(r.open) for r in rows}

    def all(self) -> dict:
        rows = self._run(AvailabilityOverride.query.order_by(AvailabilityOverride.date.asc()).all)
        return {r.date: bool(r.open) for r in rows}

    def set(self, day, is_open: bool):
        def _upsert():
            row = self.session.get(AvailabilityOverride, day)
            if row is None:
                row = AvailabilityOverride(date=day, open=is_open)
                self.session.add(row)
            else:
                row.open = is_open
            self.session.commit()
            return row

        try:
            return self._run(_upsert)
        except Exception:
            self.session.rollback()
            raise

    def clear(self, day) -> bool:
        def _delete():
            row = self.session.get(AvailabilityOverride, day)
            if row is None:
                return False
            self.session.delete(row)
            self.session.commit()
            return True

        try:
            return self._run(_delete)
        except Exception:
            self.session.rollback()
            raise

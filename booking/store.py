from sqlalchemy import and_, or_, update
from sqlalchemy.exc import IntegrityError

from models.db import db
from models.reservation import Reservation
from booking.conflicts import as_storage_unavailable, is_storage_unavailable
from booking.types import ACTIVE_STATUSES, Status


class ReservationStore:
    """
    Persistence for reservation rows.

    Every method either commits or rolls back before returning, so callers
    never inherit a half-open transaction. Storage outages come back as
    StorageUnavailable; IntegrityError is re-raised untouched for the
    conflict classifier to judge.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    @property
    def supports_row_locks(self) -> bool:
        bind = self.session.get_bind()
        return bind.dialect.name not in ("sqlite",)

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        except Exception as exc:
            self.session.rollback()
            if is_storage_unavailable(exc):
                raise as_storage_unavailable(exc) from exc
            raise

    def _read(self, fn):
        try:
            return fn()
        except Exception as exc:
            if is_storage_unavailable(exc):
                self.session.rollback()
                raise as_storage_unavailable(exc) from exc
            raise

    # ---------- single row ----------
    def get(self, reservation_id):
        return self._read(lambda: self.session.get(Reservation, reservation_id, populate_existing=True))

    def find_for_update(self, reservation_id):
        """
        Read the current row, taking a row lock where the dialect has one
        (SELECT ... FOR UPDATE). Writers still go through compare_and_set,
        which is what makes the transition safe on backends without locks.
        """
        def _q():
            return (
                self.session.query(Reservation)
                .filter(Reservation.id == reservation_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        return self._read(_q)

    def insert(self, reservation):
        self.session.add(reservation)
        self._commit()
        return reservation

    def save(self, reservation):
        self._commit()
        return reservation

    def compare_and_set(self, reservation_id, expected: Status, values: dict) -> bool:
        """UPDATE ... WHERE id = ? AND status = expected. True if this caller won."""
        return self._conditional_update(reservation_id, Reservation.status == expected, values)

    def update_if_active(self, reservation_id, values: dict) -> bool:
        """
        UPDATE ... WHERE id = ? AND status IN (pending, booked). False when the
        row went final in the meantime. IntegrityError (the exclusivity index)
        propagates.
        """
        return self._conditional_update(reservation_id, Reservation.status.in_(ACTIVE_STATUSES), values)

    def _conditional_update(self, reservation_id, predicate, values: dict) -> bool:
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id, predicate)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
        except Exception as exc:
            self.session.rollback()
            if is_storage_unavailable(exc):
                raise as_storage_unavailable(exc) from exc
            raise
        self._commit()
        return result.rowcount == 1

    def release(self):
        """End the read transaction opened by find_for_update without writing."""
        self.session.rollback()

    def delete(self, reservation):
        self.session.delete(reservation)
        self._commit()

    # ---------- ranges ----------
    def query(self, day=None, program=None, slot=None, status=None, limit=500):
        q = Reservation.query
        if day:
            q = q.filter(Reservation.date == day)
        if program:
            q = q.filter(Reservation.program == program)
        if slot:
            q = q.filter(Reservation.slot == slot)
        if status:
            q = q.filter(Reservation.status == status)
        q = q.order_by(Reservation.date.asc(), Reservation.start_at.asc(), Reservation.id.asc())
        return self._read(lambda: q.limit(limit).all())

    def active_between(self, program, start_day, end_day):
        """(date, slot, status) for pending/booked rows in [start_day, end_day]."""
        q = (
            self.session.query(Reservation.date, Reservation.slot, Reservation.status)
            .filter(
                Reservation.program == program,
                Reservation.date >= start_day,
                Reservation.date <= end_day,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
        )
        return self._read(q.all)

    def expired_pending_ids(self, now, legacy_created_before):
        q = (
            self.session.query(Reservation.id)
            .filter(
                Reservation.status == Status.PENDING,
                or_(
                    and_(Reservation.verify_expires_at.isnot(None), Reservation.verify_expires_at < now),
                    # legacy rows written before verification links carried an expiry
                    and_(Reservation.verify_expires_at.is_(None), Reservation.created_at < legacy_created_before),
                ),
            )
            .order_by(Reservation.id.asc())
        )
        return [row.id for row in self._read(q.all)]

    def finished_booked_ids(self, now):
        q = (
            self.session.query(Reservation.id)
            .filter(Reservation.status == Status.BOOKED, Reservation.end_at < now)
            .order_by(Reservation.id.asc())
        )
        return [row.id for row in self._read(q.all)]

"""
Time-driven transitions: pending reservations whose verification link
lapsed become canceled, booked reservations whose slot has ended become
done.

Candidates are selected in one query, then each row goes through the
same LifecycleManager transition a request would use, so a sweep racing
a user's verify click resolves to a single outcome.
"""
import logging

from booking.types import SweepReport

logger = logging.getLogger(__name__)

EXPIRE_JOB_ID = "reservations_expire_pending"
COMPLETE_JOB_ID = "reservations_mark_done"


class ExpiryReaper:
    def __init__(self, lifecycle):
        self.lifecycle = lifecycle

    @property
    def store(self):
        return self.lifecycle.store

    def expire_sweep(self) -> SweepReport:
        now = self.lifecycle.clock.utcnow()
        legacy_cutoff = now - self.lifecycle.policy.legacy_pending_grace
        ids = self.store.expired_pending_ids(now, legacy_cutoff)
        return self._drive(ids, self.lifecycle.expire)

    def complete_sweep(self) -> SweepReport:
        now = self.lifecycle.clock.utcnow()
        ids = self.store.finished_booked_ids(now)
        return self._drive(ids, self.lifecycle.complete)

    def _drive(self, ids, transition) -> SweepReport:
        report = SweepReport(examined=len(ids))
        for reservation_id in ids:
            result = transition(reservation_id)
            if result.changed:
                report.changed += 1
                report.ids.append(reservation_id)
        return report


def register_scheduler(app, build_reaper, scheduler=None):
    """
    Run both sweeps hourly inside this process. max_instances=1 keeps a slow
    sweep from overlapping the next tick; running a single scheduler across
    the cluster is left to deployment (one leader, or cron on one host).
    """
    from apscheduler.schedulers.background import BackgroundScheduler

    scheduler = scheduler or BackgroundScheduler(timezone=app.config.get("BUSINESS_TIMEZONE", "Asia/Tokyo"))
    interval = int(app.config.get("REAPER_INTERVAL_MINUTES", 60))

    def _job(name):
        def run():
            with app.app_context():
                reaper = build_reaper()
                try:
                    sweep = reaper.expire_sweep if name == EXPIRE_JOB_ID else reaper.complete_sweep
                    report = sweep()
                    logger.info("%s: examined=%s changed=%s", name, report.examined, report.changed)
                except Exception as e:
                    logger.warning("%s failed: %s", name, e, exc_info=True)
        return run

    for job_id in (EXPIRE_JOB_ID, COMPLETE_JOB_ID):
        scheduler.add_job(
            _job(job_id),
            "interval",
            minutes=interval,
            id=job_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
    scheduler.start()
    app.extensions["reservation_scheduler"] = scheduler
    return scheduler

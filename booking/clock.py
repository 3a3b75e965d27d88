from datetime import date, datetime, timedelta

import pytz


class Clock:
    """
    Current-instant provider bound to the business timezone.

    Instants handed to the store are naive UTC (that is how the columns are
    stored); calendar questions ("what day is it") are answered in the
    business timezone.
    """

    def __init__(self, timezone: str = "Asia/Tokyo"):
        self.tz = pytz.timezone(timezone)

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)

    def utcnow(self) -> datetime:
        return self.now().astimezone(pytz.UTC).replace(tzinfo=None)

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()


class FixedClock(Clock):
    """Clock pinned to one instant. Used by tests and replay tooling."""

    def __init__(self, instant: datetime, timezone: str = "Asia/Tokyo"):
        super().__init__(timezone)
        if instant.tzinfo is None:
            instant = pytz.UTC.localize(instant)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)

    @classmethod
    def at_local(cls, year, month, day, hour=9, minute=0, timezone="Asia/Tokyo"):
        tz = pytz.timezone(timezone)
        local = tz.localize(datetime(year, month, day, hour, minute))
        return cls(local.astimezone(pytz.UTC), timezone)

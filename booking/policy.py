from dataclasses import dataclass, field
from datetime import date, timedelta


EXCLUSIVITY_DAY = "day"
EXCLUSIVITY_SLOT = "slot"


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


@dataclass(frozen=True)
class BookingPolicy:
    timezone: str = "Asia/Tokyo"
    verify_grace: timedelta = timedelta(hours=1)
    legacy_pending_grace: timedelta = timedelta(hours=1)
    lead_days: int = 1
    closed_weekdays: tuple = (5, 6)  # Saturday, Sunday
    publish_cutoff_day: int = 25
    next_horizon_days: int = 60
    exclusivity: str = EXCLUSIVITY_DAY
    transition_retries: int = 3
    closed_dates: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        if self.exclusivity not in (EXCLUSIVITY_DAY, EXCLUSIVITY_SLOT):
            raise ValueError(f"RESERVATION_EXCLUSIVITY must be 'day' or 'slot', got {self.exclusivity!r}")
        if self.lead_days < 0:
            raise ValueError("RESERVATION_LEAD_DAYS must be >= 0")

    @classmethod
    def from_config(cls, config) -> "BookingPolicy":
        return cls(
            timezone=config.get("BUSINESS_TIMEZONE", "Asia/Tokyo"),
            verify_grace=timedelta(minutes=int(config.get("VERIFY_GRACE_MINUTES", 60))),
            legacy_pending_grace=timedelta(minutes=int(config.get("LEGACY_PENDING_GRACE_MINUTES", 60))),
            lead_days=int(config.get("RESERVATION_LEAD_DAYS", 1)),
            closed_weekdays=tuple(config.get("CLOSED_WEEKDAYS", (5, 6))),
            publish_cutoff_day=int(config.get("PUBLISH_CUTOFF_DAY", 25)),
            next_horizon_days=int(config.get("NEXT_HORIZON_DAYS", 60)),
            exclusivity=(config.get("RESERVATION_EXCLUSIVITY") or EXCLUSIVITY_DAY).strip().lower(),
            transition_retries=int(config.get("TRANSITION_RETRIES", 3)),
            closed_dates=frozenset(_as_date(d) for d in (config.get("CLOSED_DATES") or ())),
        )

    def exclusivity_key(self, slot) -> str:
        if self.exclusivity == EXCLUSIVITY_SLOT:
            return slot.value
        return EXCLUSIVITY_DAY

import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _csv(name, default=""):
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as tourslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "tourslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public URL used in emailed verification links
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://127.0.0.1:5002")

    # Business calendar
    BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Asia/Tokyo")
    CLOSED_WEEKDAYS = [int(d) for d in _csv("CLOSED_WEEKDAYS", "5,6")]  # Mon=0 .. Sun=6
    CLOSED_DATES = _csv("CLOSED_DATES")  # YYYY-MM-DD, closed unless overridden
    RESERVATION_LEAD_DAYS = int(os.getenv("RESERVATION_LEAD_DAYS", "1"))

    # Publishing lock: next month stays hidden until this day of the month has passed
    PUBLISH_CUTOFF_DAY = int(os.getenv("PUBLISH_CUTOFF_DAY", "25"))
    NEXT_HORIZON_DAYS = int(os.getenv("NEXT_HORIZON_DAYS", "60"))

    # Exclusivity granularity: "day" (one active reservation per program+date)
    # or "slot" (one per program+date+slot)
    RESERVATION_EXCLUSIVITY = os.getenv("RESERVATION_EXCLUSIVITY", "day")

    # Verification link lifetime
    VERIFY_GRACE_MINUTES = int(os.getenv("VERIFY_GRACE_MINUTES", "60"))
    # Pending rows without verify_expires_at are released after this long
    LEGACY_PENDING_GRACE_MINUTES = int(os.getenv("LEGACY_PENDING_GRACE_MINUTES", "60"))
    TRANSITION_RETRIES = 3

    # Reaper
    RESERVATION_SCHEDULER_ENABLED = os.getenv("RESERVATION_SCHEDULER_ENABLED", "false").lower() == "true"
    REAPER_INTERVAL_MINUTES = int(os.getenv("REAPER_INTERVAL_MINUTES", "60"))

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Content mirror (WordPress REST)
    MIRROR_BASE_URL = os.getenv("MIRROR_BASE_URL")
    MIRROR_USER = os.getenv("MIRROR_USER")
    MIRROR_APP_PASSWORD = os.getenv("MIRROR_APP_PASSWORD")
    MIRROR_ENDPOINT = os.getenv("MIRROR_ENDPOINT", "/wp-json/wp/v2/reservation")
    MIRROR_TIMEOUT_SECONDS = 10
    MIRROR_MAX_TRIES = 5
    MIRROR_RETRY_BACKOFF = (10, 30, 60, 120, 300)

    # Side effects run on a background thread unless this is set
    DISPATCH_INLINE = False

    # Returned to clients on 503
    STORAGE_RETRY_AFTER_SECONDS = 5

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
    PUBLIC_BASE_URL = "http://testserver"
    RESERVATION_SCHEDULER_ENABLED = False
    SMTP_HOST = None
    MIRROR_BASE_URL = None
    MIRROR_RETRY_BACKOFF = ()
    DISPATCH_INLINE = True

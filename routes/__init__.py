from .health import health_bp
from .reservations import reservations_bp
from .availability import availability_bp
from .verify_pages import verify_pages_bp
from .audit_logs import audit_bp

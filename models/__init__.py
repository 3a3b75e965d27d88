from .db import db
from .audit_log import AuditLog
from .reservation import Reservation
from .availability_override import AvailabilityOverride

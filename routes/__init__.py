from .health import health_bp
from .auth import auth_bp
from .bookings import booking_bp
from .availability import availability_bp
from .services import service_bp
from .staff import staff_bp
from .feedback import feedback_bp
from .contact import contact_bp
from .admin import admin_bp
from .audit_logs import audit_bp

ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    booking_bp,
    availability_bp,
    service_bp,
    staff_bp,
    feedback_bp,
    contact_bp,
    admin_bp,
    audit_bp,
)

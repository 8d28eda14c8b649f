from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .staff import Staff, StaffWorkingHours
from .slot import Slot
from .booking import Booking, BookingLineItem
from .feedback import Feedback
from .contact_message import ContactMessage

from datetime import datetime
from models.db import db

class Staff(db.Model):
    __tablename__ = "staff"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    specialization = db.Column(db.String(120), nullable=True)
    experience_years = db.Column(db.Integer, nullable=False, default=0)
    bio = db.Column(db.Text, nullable=True)

    # soft delete: bookings keep pointing at former stylists
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    working_hours = db.relationship(
        "StaffWorkingHours",
        back_populates="staff",
        cascade="all, delete-orphan",
        order_by="StaffWorkingHours.id",
    )


DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class StaffWorkingHours(db.Model):
    """Informational weekly hours; bookings are not checked against them."""
    __tablename__ = "staff_working_hours"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = db.Column(db.String(10), nullable=False)  # Monday..Sunday
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    staff = db.relationship("Staff", back_populates="working_hours")

    __table_args__ = (
        db.UniqueConstraint("staff_id", "day_of_week", name="uq_staff_working_hours_day"),
    )

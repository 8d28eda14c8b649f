from datetime import datetime
from models.db import db

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
CANCEL_REQUESTED = "CANCEL_REQUESTED"
CANCELLED = "CANCELLED"
COMPLETED = "COMPLETED"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCEL_REQUESTED, CANCELLED, COMPLETED)
# statuses that still hold their slots
ACTIVE_STATUSES = (PENDING, CONFIRMED, CANCEL_REQUESTED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # first line item; kept for single-service listings
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    stylist_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True, index=True)

    booking_date = db.Column(db.Date, nullable=False)
    time_slot = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=PENDING)
    # status values: PENDING, CONFIRMED, CANCEL_REQUESTED, CANCELLED, COMPLETED

    total_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_duration = db.Column(db.Integer, nullable=False, default=0)

    cancellation_reason = db.Column(db.String(255), nullable=True)
    cancellation_requested_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User")
    service = db.relationship("Service")
    stylist = db.relationship("Staff")
    line_items = db.relationship(
        "BookingLineItem",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BookingLineItem.id",
    )

    __table_args__ = (
        # coarse date+time lookup used by the allocation lock
        db.Index("ix_bookings_date_time_status", "booking_date", "time_slot", "status"),
    )

    @property
    def is_bulk(self) -> bool:
        return len(self.line_items) > 1

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.time_slot)

    def slot_service_ids(self):
        """Services whose slots this booking occupies, in line-item order."""
        ids = [item.service_id for item in self.line_items]
        return ids or [self.service_id]


class BookingLineItem(db.Model):
    __tablename__ = "booking_services"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)

    # frozen at booking time; catalog price changes never touch these
    price_at_booking = db.Column(db.Numeric(10, 2), nullable=False)
    duration_at_booking = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    booking = db.relationship("Booking", back_populates="line_items")
    service = db.relationship("Service")

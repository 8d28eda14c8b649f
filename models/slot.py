from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "availability"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    time_slot = db.Column(db.Time, nullable=False)

    # False while an active booking holds this (service, date, time)
    available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        # One availability flag per service/date/time; lazy creation relies on it
        db.UniqueConstraint("service_id", "date", "time_slot", name="uq_availability_service_slot"),
    )

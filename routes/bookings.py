from flask import Blueprint, request, jsonify, g

from models.booking import Booking
from models.feedback import Feedback
from routes.serializers import booking_to_dict
from scheduling import UNSET, create_booking, request_cancellation, run_in_unit_of_work, set_status
from scheduling.errors import NotFoundError
from scheduling.normalize import parse_optional_id, parse_service_selection
from security.rbac import admin_required
from utils.auth_context import login_required

booking_bp = Blueprint("bookings", __name__, url_prefix="/bookings")


# ---------- CUSTOMERS: book one or more services at a date+time ----------
@booking_bp.post("")
@login_required
def create():
    data = request.get_json(silent=True) or {}
    service_ids = parse_service_selection(data)
    stylist_id = parse_optional_id(data.get("stylist_id"), "stylist_id")
    user_id = g.user.id

    booking = run_in_unit_of_work(lambda uow: create_booking(
        uow,
        requester_id=user_id,
        booking_date=data.get("booking_date"),
        time_slot=data.get("time_slot"),
        service_ids=service_ids,
        stylist_id=stylist_id,
    ))
    return jsonify(booking_to_dict(booking)), 201


# ---------- CUSTOMERS: my bookings with feedback ----------
@booking_bp.get("/mine")
@login_required
def my_bookings():
    rows = (
        Booking.query
        .filter_by(user_id=g.user.id)
        .order_by(Booking.booking_date.desc(), Booking.time_slot.desc())
        .all()
    )

    feedback = {}
    booking_ids = [b.id for b in rows]
    if booking_ids:
        for f in (
            Feedback.query
            .filter(Feedback.user_id == g.user.id, Feedback.booking_id.in_(booking_ids))
            .order_by(Feedback.created_at.asc())
            .all()
        ):
            feedback[f.booking_id] = f  # latest wins

    return jsonify([booking_to_dict(b, feedback=feedback.get(b.id), include_user=False) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = Booking.query.get(booking_id)
    if not booking or (booking.user_id != g.user.id and not g.user.is_admin):
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return jsonify(booking_to_dict(booking)), 200


# ---------- CUSTOMERS: request cancellation (admin approves) ----------
@booking_bp.put("/<int:booking_id>/cancel")
@login_required
def cancel(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = data.get("cancellation_reason") or data.get("reason")
    user_id = g.user.id

    booking = run_in_unit_of_work(
        lambda uow: request_cancellation(uow, booking_id, requester_id=user_id, reason=reason)
    )
    return jsonify(
        message="Cancellation request submitted. Waiting for admin approval.",
        booking=booking_to_dict(booking),
    ), 200


# ---------- ADMIN: change status / assign stylist ----------
@booking_bp.put("/<int:booking_id>/status")
@admin_required
def update_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    stylist_id = parse_optional_id(data.get("stylist_id"), "stylist_id") if "stylist_id" in data else UNSET
    actor_id = g.user.id

    booking = run_in_unit_of_work(lambda uow: set_status(
        uow,
        booking_id,
        data.get("status"),
        stylist_id=stylist_id,
        actor_id=actor_id,
    ))
    return jsonify(message="Booking updated", booking=booking_to_dict(booking)), 200

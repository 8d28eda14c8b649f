from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import Booking
from models.feedback import Feedback
from models.service import Service
from routes.serializers import feedback_to_dict
from scheduling.normalize import parse_optional_id
from security.rbac import admin_required
from utils.audit import log_event
from utils.auth_context import login_required

feedback_bp = Blueprint("feedback", __name__, url_prefix="/feedback")


@feedback_bp.get("")
def list_visible_feedback():
    service_id = request.args.get("service_id", type=int)
    q = Feedback.query.filter_by(is_visible=True)
    if service_id:
        q = q.filter_by(service_id=service_id)
    rows = q.order_by(Feedback.created_at.desc()).all()
    return jsonify([feedback_to_dict(f) for f in rows]), 200


@feedback_bp.get("/mine")
@login_required
def my_feedback():
    rows = Feedback.query.filter_by(user_id=g.user.id).order_by(Feedback.created_at.desc()).all()
    return jsonify([feedback_to_dict(f) for f in rows]), 200


@feedback_bp.post("")
@login_required
def create_feedback():
    data = request.get_json(silent=True) or {}
    rating = data.get("rating")
    comment = (data.get("comment") or "").strip() or None
    service_id = parse_optional_id(data.get("service_id"), "service_id")
    booking_id = parse_optional_id(data.get("booking_id"), "booking_id")

    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        return jsonify(error="Rating must be between 1 and 5"), 400

    if booking_id:
        booking = Booking.query.filter_by(id=booking_id, user_id=g.user.id).first()
        if not booking:
            return jsonify(error="Booking not found or access denied"), 403
        service_id = service_id or booking.service_id

    if service_id and Service.query.get(service_id) is None:
        return jsonify(error="Service not found"), 404

    fb = Feedback(
        user_id=g.user.id,
        booking_id=booking_id or None,
        service_id=service_id or None,
        rating=rating,
        comment=comment,
    )
    db.session.add(fb)
    db.session.commit()

    log_event("FEEDBACK_CREATE", user_id=g.user.id, entity="feedback", entity_id=fb.id)
    return jsonify(feedback_to_dict(fb)), 201


@feedback_bp.get("/admin/all")
@admin_required
def all_feedback():
    rows = Feedback.query.order_by(Feedback.created_at.desc()).all()
    return jsonify([feedback_to_dict(f) for f in rows]), 200


@feedback_bp.put("/<int:feedback_id>/visibility")
@admin_required
def set_visibility(feedback_id: int):
    fb = Feedback.query.get(feedback_id)
    if not fb:
        return jsonify(error="Feedback not found"), 404

    data = request.get_json(silent=True) or {}
    fb.is_visible = bool(data.get("is_visible", True))
    db.session.commit()

    log_event("FEEDBACK_VISIBILITY", user_id=g.user.id, entity="feedback", entity_id=fb.id,
              metadata={"is_visible": fb.is_visible})
    return jsonify(message="Feedback visibility updated", is_visible=fb.is_visible), 200

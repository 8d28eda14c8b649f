from datetime import date

from flask import Blueprint, jsonify, g, request, current_app
from models import db
from models.booking import Booking, CANCELLED, CONFIRMED
from models.user import User, Role
from routes.serializers import booking_to_dict
from scheduling.normalize import parse_booking_date
from security.rbac import admin_required
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _limit():
    return current_app.config.get("LIST_LIMIT", 200)


@admin_bp.get("/dashboard")
@admin_required
def dashboard():
    total = Booking.query.count()
    upcoming = Booking.query.filter(Booking.status == CONFIRMED, Booking.booking_date >= date.today()).count()
    cancelled = Booking.query.filter(Booking.status == CANCELLED).count()
    recent = Booking.query.order_by(Booking.created_at.desc()).limit(10).all()

    return jsonify(
        total_bookings=total,
        upcoming_appointments=upcoming,
        cancelled_appointments=cancelled,
        recent_bookings=[booking_to_dict(b) for b in recent],
    ), 200


@admin_bp.get("/appointments")
@admin_required
def appointments():
    status = (request.args.get("status") or "").strip().upper()
    date_str = request.args.get("date")  # YYYY-MM-DD

    q = Booking.query
    if status:
        q = q.filter(Booking.status == status)
    if date_str:
        q = q.filter(Booking.booking_date == parse_booking_date(date_str))

    rows = (
        q.order_by(Booking.booking_date.desc(), Booking.time_slot.desc())
        .limit(_limit())
        .all()
    )
    return jsonify([booking_to_dict(b) for b in rows]), 200


@admin_bp.get("/booking-history")
@admin_required
def booking_history():
    rows = Booking.query.order_by(Booking.created_at.desc()).limit(_limit()).all()
    return jsonify([booking_to_dict(b) for b in rows]), 200


@admin_bp.get("/users")
@admin_required
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(_limit()).all()
    return jsonify([
        {
            "id": u.id,
            "email": u.email,
            "full_name": u.full_name,
            "phone_number": u.phone_number,
            "roles": sorted(u.role_names),
            "created_at": u.created_at.isoformat(),
        }
        for u in users
    ]), 200


@admin_bp.post("/users/<int:user_id>/roles")
@admin_required
def update_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    roles = data.get("roles")
    if not isinstance(roles, list) or not roles:
        return jsonify(error="roles must be a non-empty list"), 400

    role_names = {name.strip().upper() for name in roles if isinstance(name, str) and name.strip()}
    available_roles = Role.query.filter(Role.name.in_(role_names)).all()
    missing = role_names - {r.name for r in available_roles}
    if not role_names or missing:
        return jsonify(error="Unknown role(s)", missing=sorted(missing)), 400

    user = User.query.get(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    if "ADMIN" not in role_names and user.is_admin:
        if user.id == g.user.id:
            return jsonify(error="Cannot remove your own ADMIN role"), 403
        admin_count = User.query.join(User.roles).filter(Role.name == "ADMIN").count()
        if admin_count <= 1:
            return jsonify(error="Cannot remove the last ADMIN"), 403

    user.roles = available_roles
    db.session.commit()

    log_event("ADMIN_UPDATE_ROLES", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"roles": sorted(role_names)})
    return jsonify(message="Roles updated", roles=sorted(role_names)), 200

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.staff import DAYS_OF_WEEK, Staff, StaffWorkingHours
from routes.serializers import staff_to_dict, working_hours_to_dict
from scheduling.errors import ValidationError
from scheduling.normalize import normalize_time_slot
from security.rbac import admin_required
from utils.audit import log_event

staff_bp = Blueprint("staff", __name__, url_prefix="/staff")

_TEXT_FIELDS = ("phone", "specialization", "bio")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


@staff_bp.get("")
def list_staff():
    rows = Staff.query.filter_by(is_active=True).order_by(Staff.name.asc()).all()
    return jsonify([staff_to_dict(s) for s in rows]), 200


@staff_bp.get("/<int:staff_id>")
def get_staff(staff_id: int):
    staff = Staff.query.get(staff_id)
    if not staff or not staff.is_active:
        return jsonify(error="Staff member not found"), 404
    return jsonify(staff_to_dict(staff, include_hours=True)), 200


@staff_bp.post("")
@admin_required
def create_staff():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    experience = data.get("experience_years") or 0

    if not name:
        return jsonify(error="Name required"), 400
    if not _is_valid_email(email):
        return jsonify(error="Valid email required"), 400
    if not isinstance(experience, int) or experience < 0:
        return jsonify(error="Experience years must be a positive number"), 400

    staff = Staff(name=name, email=email, experience_years=experience)
    for field in _TEXT_FIELDS:
        setattr(staff, field, (data.get(field) or "").strip() or None)
    db.session.add(staff)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Staff email already exists"), 409

    log_event("STAFF_CREATE", user_id=g.user.id, entity="staff", entity_id=staff.id)
    return jsonify(staff_to_dict(staff)), 201


@staff_bp.put("/<int:staff_id>")
@admin_required
def update_staff(staff_id: int):
    staff = Staff.query.get(staff_id)
    if not staff:
        return jsonify(error="Staff member not found"), 404

    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return jsonify(error="Name required"), 400
        staff.name = name
    if "email" in data:
        email = (data.get("email") or "").strip().lower()
        if not _is_valid_email(email):
            return jsonify(error="Valid email required"), 400
        staff.email = email
    if "experience_years" in data:
        experience = data.get("experience_years")
        if not isinstance(experience, int) or experience < 0:
            return jsonify(error="Experience years must be a positive number"), 400
        staff.experience_years = experience
    if "is_active" in data:
        staff.is_active = bool(data.get("is_active"))
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(staff, field, (data.get(field) or "").strip() or None)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Staff email already exists"), 409

    log_event("STAFF_UPDATE", user_id=g.user.id, entity="staff", entity_id=staff.id)
    return jsonify(staff_to_dict(staff)), 200


@staff_bp.delete("/<int:staff_id>")
@admin_required
def deactivate_staff(staff_id: int):
    staff = Staff.query.get(staff_id)
    if not staff:
        return jsonify(error="Staff member not found"), 404

    staff.is_active = False
    db.session.commit()

    log_event("STAFF_DEACTIVATE", user_id=g.user.id, entity="staff", entity_id=staff_id)
    return jsonify(message="Staff member deactivated"), 200


def _parse_hours(entry):
    if not isinstance(entry, dict):
        raise ValidationError("Each working_hours entry must be an object")
    day = (entry.get("day_of_week") or "").strip().capitalize()
    if day not in DAYS_OF_WEEK:
        raise ValidationError(
            f"Missing or invalid day_of_week: {entry.get('day_of_week')}",
            fields={"day_of_week": "expected Monday..Sunday"},
        )
    if not entry.get("start_time") or not entry.get("end_time"):
        raise ValidationError(f"Missing required fields for {day}", fields={"day_of_week": day})
    start = normalize_time_slot(entry.get("start_time"))
    end = normalize_time_slot(entry.get("end_time"))
    if start >= end:
        raise ValidationError(f"start_time must be before end_time for {day}", fields={"day_of_week": day})
    is_available = entry.get("is_available", True)
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be boolean", fields={"is_available": "must be boolean"})
    return day, start, end, is_available


@staff_bp.post("/<int:staff_id>/working-hours")
@admin_required
def set_working_hours(staff_id: int):
    staff = Staff.query.get(staff_id)
    if not staff:
        return jsonify(error="Staff member not found"), 404

    data = request.get_json(silent=True) or {}
    entries = data.get("working_hours")
    if not isinstance(entries, list):
        return jsonify(error="working_hours must be an array"), 400

    # validate everything before touching any row
    parsed = [_parse_hours(entry) for entry in entries]
    days = [day for day, _, _, _ in parsed]
    if len(set(days)) != len(days):
        return jsonify(error="Each day_of_week can only appear once"), 400

    existing = {h.day_of_week: h for h in staff.working_hours}
    results = []
    for day, start, end, is_available in parsed:
        hours = existing.get(day)
        if hours is None:
            hours = StaffWorkingHours(staff=staff, day_of_week=day)
            db.session.add(hours)
        hours.start_time = start
        hours.end_time = end
        hours.is_available = is_available
        results.append(hours)
    db.session.commit()

    log_event("STAFF_WORKING_HOURS_SET", user_id=g.user.id, entity="staff", entity_id=staff.id,
              metadata={"days": days})
    return jsonify(working_hours=[working_hours_to_dict(h) for h in results]), 200

from datetime import date

from flask import Blueprint, request, jsonify, g

from models.service import Service
from models.slot import Slot
from routes.serializers import slot_to_dict
from scheduling import run_in_unit_of_work
from scheduling.errors import NotFoundError, ValidationError
from scheduling.normalize import normalize_time_slot, parse_booking_date, parse_id
from scheduling.slots import set_availability
from security.rbac import admin_required

availability_bp = Blueprint("availability", __name__, url_prefix="/availability")


@availability_bp.get("/service/<int:service_id>")
def service_availability(service_id: int):
    q = Slot.query.filter_by(service_id=service_id, available=True)

    date_str = request.args.get("date")
    if date_str:
        q = q.filter(Slot.date == parse_booking_date(date_str))
    else:
        q = q.filter(Slot.date >= date.today())

    slots = q.order_by(Slot.date.asc(), Slot.time_slot.asc()).all()
    return jsonify([slot_to_dict(s) for s in slots]), 200


@availability_bp.post("")
@admin_required
def set_slot():
    data = request.get_json(silent=True) or {}
    service_id = parse_id(data.get("service_id"), "service_id")
    day = parse_booking_date(data.get("date"))
    at = normalize_time_slot(data.get("time_slot"))
    is_available = data.get("is_available")
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be boolean", fields={"is_available": "must be boolean"})

    if Service.query.get(service_id) is None:
        raise NotFoundError("Service not found", service_id=service_id)

    actor_id = g.user.id
    slot, created = run_in_unit_of_work(
        lambda uow: set_availability(uow, service_id, day, at, is_available, actor_id=actor_id)
    )
    return jsonify(slot_to_dict(slot)), 201 if created else 200

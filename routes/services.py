from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import Booking, BookingLineItem
from models.service import Service
from routes.serializers import service_to_dict
from security.rbac import admin_required
from utils.audit import log_event

service_bp = Blueprint("services", __name__, url_prefix="/services")


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price.quantize(Decimal("0.01"))


def _parse_duration(value):
    try:
        duration = int(value)
    except (TypeError, ValueError):
        return None
    return duration if duration >= 1 else None


@service_bp.get("")
def list_services():
    category = request.args.get("category")
    q = Service.query
    if category:
        q = q.filter_by(category=category)
    rows = q.order_by(Service.created_at.desc()).all()
    return jsonify([service_to_dict(s) for s in rows]), 200


@service_bp.get("/<int:service_id>")
def get_service(service_id: int):
    service = Service.query.get(service_id)
    if not service:
        return jsonify(error="Service not found"), 404
    return jsonify(service_to_dict(service)), 200


@service_bp.post("")
@admin_required
def create_service():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    price = _parse_price(data.get("price"))
    duration = _parse_duration(data.get("duration"))

    if not name:
        return jsonify(error="Service name required"), 400
    if price is None:
        return jsonify(error="Valid price required"), 400
    if duration is None:
        return jsonify(error="Valid duration required"), 400

    service = Service(
        name=name,
        description=(data.get("description") or "").strip() or None,
        category=(data.get("category") or "").strip() or "General",
        price=price,
        duration=duration,
        image_url=(data.get("image_url") or "").strip() or None,
    )
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_to_dict(service)), 201


@service_bp.put("/<int:service_id>")
@admin_required
def update_service(service_id: int):
    service = Service.query.get(service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return jsonify(error="Service name required"), 400
        service.name = name
    if "price" in data:
        price = _parse_price(data.get("price"))
        if price is None:
            return jsonify(error="Valid price required"), 400
        # existing bookings keep their frozen line-item prices
        service.price = price
    if "duration" in data:
        duration = _parse_duration(data.get("duration"))
        if duration is None:
            return jsonify(error="Valid duration required"), 400
        service.duration = duration
    for field in ("description", "category", "image_url"):
        if field in data:
            setattr(service, field, (data.get(field) or "").strip() or None)
    if not service.category:
        service.category = "General"

    db.session.commit()
    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_to_dict(service)), 200


@service_bp.delete("/<int:service_id>")
@admin_required
def delete_service(service_id: int):
    service = Service.query.get(service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    referenced = (
        Booking.query.filter_by(service_id=service_id).first() is not None
        or BookingLineItem.query.filter_by(service_id=service_id).first() is not None
    )
    if referenced:
        return jsonify(error="Service has bookings and cannot be deleted"), 409

    db.session.delete(service)
    db.session.commit()
    log_event("SERVICE_DELETE", user_id=g.user.id, entity="service", entity_id=service_id)
    return jsonify(message="Service deleted"), 200

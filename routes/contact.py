from flask import Blueprint, request, jsonify, g

from models import db
from models.contact_message import ContactMessage
from security.rbac import admin_required
from utils.audit import log_event

contact_bp = Blueprint("contact", __name__, url_prefix="/contact")


def _to_dict(m):
    return {
        "id": m.id,
        "name": m.name,
        "email": m.email,
        "phone": m.phone,
        "message": m.message,
        "is_read": m.is_read,
        "created_at": m.created_at.isoformat(),
    }


@contact_bp.post("")
def create_contact_message():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip()
    message = (data.get("message") or "").strip()

    if not name:
        return jsonify(error="Name required"), 400
    if "@" not in email or len(email) > 255:
        return jsonify(error="Valid email required"), 400
    if not message:
        return jsonify(error="Message required"), 400

    msg = ContactMessage(
        name=name[:120],
        email=email,
        phone=(data.get("phone") or "").strip()[:30] or None,
        message=message,
    )
    db.session.add(msg)
    db.session.commit()

    log_event("CONTACT_MESSAGE_CREATE", entity="contact_message", entity_id=msg.id)
    return jsonify(message="Message sent successfully", id=msg.id), 201


@contact_bp.get("/admin/all")
@admin_required
def list_contact_messages():
    unread_only = request.args.get("unread") == "1"
    q = ContactMessage.query
    if unread_only:
        q = q.filter_by(is_read=False)
    rows = q.order_by(ContactMessage.created_at.desc()).all()
    return jsonify([_to_dict(m) for m in rows]), 200


@contact_bp.put("/<int:message_id>/read")
@admin_required
def mark_read(message_id: int):
    msg = ContactMessage.query.get(message_id)
    if not msg:
        return jsonify(error="Message not found"), 404
    msg.is_read = True
    db.session.commit()
    return jsonify(message="Message marked as read"), 200


@contact_bp.delete("/<int:message_id>")
@admin_required
def delete_message(message_id: int):
    msg = ContactMessage.query.get(message_id)
    if not msg:
        return jsonify(error="Message not found"), 404
    db.session.delete(msg)
    db.session.commit()

    log_event("CONTACT_MESSAGE_DELETE", user_id=g.user.id, entity="contact_message", entity_id=message_id)
    return jsonify(message="Message deleted successfully"), 200

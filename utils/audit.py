import json
from flask import has_request_context, request
from models import db
from models.audit_log import AuditLog

def _client_info():
    if not has_request_context():
        return None, None
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = request.headers.get("User-Agent", "")
    return ip, (user_agent[:255] if user_agent else None)

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    ip, user_agent = _client_info()

    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    db.session.add(row)
    db.session.commit()

import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "salonslot_session")

def open_session(user_id: int) -> str:
    """
    Store a server-side session and return the raw token for the cookie.
    Existing sessions of the user are revoked first (rotation on login).
    """
    Session.query.filter_by(user_id=user_id, revoked=False).update({"revoked": True})

    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)
    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token

def session_from_request():
    raw_token = request.cookies.get(_cookie_name())
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    now = datetime.utcnow()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 20 * 60)
    if not sess or not sess.is_usable(now, idle_seconds):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def close_session() -> bool:
    raw_token = request.cookies.get(_cookie_name())
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True

def set_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return resp

def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp

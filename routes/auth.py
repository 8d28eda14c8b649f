from flask import Blueprint, request, jsonify, g

from models import db
from models.user import User, Role
from security.csrf import issue_csrf_token
from security.password import hash_password, validate_password, verify_password
from security.session import clear_session_cookie, close_session, open_session, set_session_cookie
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": sorted(user.role_names),
    }


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    full_name = (data.get("full_name") or data.get("name") or "").strip() or None
    phone_number = (data.get("phone_number") or data.get("phone") or "").strip() or None

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if full_name and len(full_name) > 120:
        return jsonify(error="Invalid full_name"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone_number=phone_number[:30] if phone_number else None,
    )
    customer_role = Role.query.filter_by(name="CUSTOMER").first()
    if customer_role:
        user.roles.append(customer_role)
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id)
    return jsonify(message="Registered successfully", user=_user_to_dict(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    raw_token = open_session(user.id)

    resp = jsonify(message="Login OK", user=_user_to_dict(user))
    set_session_cookie(resp, raw_token)
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_to_dict(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    close_session()
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    return resp, 200

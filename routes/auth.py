from flask import Blueprint, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.errors import MissingField
from models.user import User
from security.password import hash_password, verify_password
from security.session import create_session, revoke_session, token_from_request
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _user_json(user: User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email}


def _session_response(user: User, status_code: int):
    raw_token = create_session(user.id)

    resp = jsonify(token=raw_token, user=_user_json(user))
    resp.status_code = status_code
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "slotswapper_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 7 * 24 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp)


@auth_bp.post("/signup")
def signup():
    data = json_body()
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    missing = [f for f, v in (("name", name), ("email", email), ("password", password)) if not v]
    if missing:
        raise MissingField(*missing)
    if not _is_valid_email(email):
        return jsonify(error="Invalid email", code="INVALID_EMAIL"), 400
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 8)
    if len(password) < min_length:
        return jsonify(error=f"Password must be at least {min_length} characters", code="WEAK_PASSWORD"), 400

    if User.query.filter_by(email=email).first():
        log_event("SIGNUP_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="User already exists", code="EMAIL_TAKEN"), 409

    user = User(name=name[:120], email=email, password_hash=hash_password(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="User already exists", code="EMAIL_TAKEN"), 409

    log_event("SIGNUP_SUCCESS", user_id=user.id, entity="user", entity_id=user.id)
    return _session_response(user, 201)


@auth_bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    missing = [f for f, v in (("email", email), ("password", password)) if not v]
    if missing:
        raise MissingField(*missing)

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials", code="INVALID_CREDENTIALS"), 401

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return _session_response(user, 200)


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_json(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    raw_token, _ = token_from_request()
    revoke_session(raw_token)
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "slotswapper_session"), path="/")
    return resp, 200

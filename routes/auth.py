from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from security.password import hash_password, verify_password
from security.session import bearer_token_from_request, create_session, revoke_session
from security.bruteforce import is_locked, register_failure, reset_attempts
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        return jsonify(error="username and password are required"), 400

    locked, seconds_left = is_locked(username)
    if locked:
        log_event("LOGIN_LOCKED", metadata={"username": username, "seconds_left": seconds_left})
        return jsonify(error="Account temporarily locked. Try again later.", retry_after_seconds=seconds_left), 429

    user = User.query.filter_by(username=username).first()
    if not user or not verify_password(password, user.password_hash):
        fail_count, locked_now = register_failure(username)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"username": username, "fail_count": fail_count, "locked_now": locked_now}
        )
        if locked_now:
            return jsonify(error="Too many failed attempts. Account locked.", lockout_minutes=current_app.config.get("LOCKOUT_MINUTES", 5)), 429
        return jsonify(error="Invalid credentials"), 401

    reset_attempts(username)
    token, expires_at = create_session(user.id)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return jsonify(
        token=token,
        token_type="Bearer",
        expires_at=expires_at.isoformat(),
        user={"id": user.id, "username": user.username, "email": user.email},
    ), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(id=g.user.id, username=g.user.username, email=g.user.email), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(bearer_token_from_request())
    log_event("LOGOUT", user_id=g.user.id)
    return jsonify(message="Logged out"), 200


@auth_bp.post("/change_password")
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        return jsonify(error="Invalid current password"), 401
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return jsonify(error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"), 400
    if verify_password(new_password, g.user.password_hash):
        return jsonify(error="New password must differ from the current one"), 400

    g.user.password_hash = hash_password(new_password)
    g.user.password_changed_at = datetime.utcnow()
    db.session.commit()

    log_event("PASSWORD_CHANGED", user_id=g.user.id)
    return jsonify(message="Password updated"), 200

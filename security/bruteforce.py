from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.login_attempt import LoginAttempt

def _client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"

def _attempt_row(username: str):
    return LoginAttempt.query.filter_by(username=username, ip=_client_ip()).first()

def is_locked(username: str) -> tuple[bool, int]:
    """
    Returns (locked, seconds_remaining)
    """
    row = _attempt_row(username)
    if not row or not row.locked_until:
        return False, 0

    now = datetime.utcnow()
    if row.locked_until <= now:
        return False, 0

    return True, max(int((row.locked_until - now).total_seconds()), 1)

def register_failure(username: str) -> tuple[int, bool]:
    """
    Increments failure counter. Returns (fail_count, locked_now)
    """
    now = datetime.utcnow()
    row = _attempt_row(username)
    if not row:
        row = LoginAttempt(username=username, ip=_client_ip(), fail_count=0)
        db.session.add(row)

    row.fail_count += 1
    row.last_fail_at = now

    max_attempts = current_app.config.get("MAX_LOGIN_ATTEMPTS", 5)
    lock_minutes = current_app.config.get("LOCKOUT_MINUTES", 5)

    locked_now = row.fail_count >= max_attempts
    if locked_now:
        row.locked_until = now + timedelta(minutes=lock_minutes)

    db.session.commit()
    return row.fail_count, locked_now

def reset_attempts(username: str):
    row = _attempt_row(username)
    if not row:
        return
    row.fail_count = 0
    row.last_fail_at = None
    row.locked_until = None
    db.session.commit()

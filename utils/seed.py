from flask import current_app
from sqlalchemy import inspect
from models import db
from models.user import User
from security.password import hash_password

def create_user(username: str, password: str, email=None) -> User:
    user = User(username=username.strip(), email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()
    return user

def seed_admin_user():
    """Create the configured default admin once (safe & idempotent)."""
    username = current_app.config.get("DEFAULT_ADMIN_USERNAME")
    password = current_app.config.get("DEFAULT_ADMIN_PASSWORD")
    if not username or not password:
        return None

    # `flask db upgrade` builds the app before the tables exist
    if not inspect(db.engine).has_table(User.__tablename__):
        current_app.logger.info("users table missing, skipping admin seed")
        return None

    if User.query.filter_by(username=username).first():
        return None

    user = create_user(username, password, current_app.config.get("DEFAULT_ADMIN_EMAIL"))
    current_app.logger.info("Seeded default user %s", username)
    return user

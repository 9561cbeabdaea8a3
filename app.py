from flask import Flask, jsonify
from config import Config
from routes import (
    health_bp, auth_bp, camera_bp, customer_bp, rental_bp, availability_bp, dashboard_bp,
)

from models import db
from flask_migrate import Migrate
from services.calendar import build_calendar_mirror
from services.dashboard import DashboardAggregator
from services.errors import RentalError
from services.rentals import RentalService
from services.repositories import BookingRepository, CustomerRepository, ResourceRepository
from utils.seed import seed_admin_user
from utils.auth_context import load_current_user


def create_app(test_config=None, calendar=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(camera_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(rental_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(dashboard_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Services are built once here and shared by the blueprints
    bookings = BookingRepository(db.session)
    if calendar is None:
        calendar = build_calendar_mirror(app.config, app.logger)
    app.extensions["rental_service"] = RentalService(
        session=db.session,
        bookings=bookings,
        resources=ResourceRepository(db.session),
        customers=CustomerRepository(db.session),
        calendar=calendar,
        logger=app.logger,
        timezone=app.config.get("TIMEZONE"),
        calendar_timezone=app.config.get("CALENDAR_TIMEZONE"),
    )
    app.extensions["dashboard"] = DashboardAggregator(db.session, bookings)

    # Seed the default admin at startup (safe & idempotent)
    with app.app_context():
        seed_admin_user()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(RentalError)
    def _rental_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User
from utils.seed import create_user

def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("username")
    @click.password_option()
    @click.option("--email", default=None)
    def create_user_command(username, password, email):
        """Create a staff login."""
        if User.query.filter_by(username=username.strip()).first():
            print("User already exists")
            return
        user = create_user(username, password, email)
        print(f"{user.username} created")

    @app.cli.command("mark-overdue")
    def mark_overdue_command():
        """Flag active rentals whose end has passed as overdue."""
        flagged = app.extensions["rental_service"].mark_overdue()
        for rental in flagged:
            print(f"rental {rental.id} (camera {rental.camera_id}) is overdue since {rental.window.effective_end:%Y-%m-%d %H:%M}")
        print(f"{len(flagged)} rental(s) flagged overdue")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5001)

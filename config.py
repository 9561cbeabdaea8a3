import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as lensycam.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "lensycam.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 24 hours session lifetime
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(24 * 60 * 60)))

    # Idle timeout: 2 hours
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(2 * 60 * 60)))

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 5

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Seeded at startup when no user with this name exists
    DEFAULT_ADMIN_USERNAME = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@lensycam.local")

    # Business time zone, used for "today" and overdue detection
    TIMEZONE = os.getenv("TIMEZONE", "Asia/Ho_Chi_Minh")

    # Google Calendar mirroring (disabled unless both are set)
    GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID")
    GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv(
        "GOOGLE_SERVICE_ACCOUNT_FILE",
        os.path.join(BASE_DIR, "google-service-account.json")
    )
    CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "Asia/Ho_Chi_Minh")
    CALENDAR_TIMEOUT_SECONDS = int(os.getenv("CALENDAR_TIMEOUT_SECONDS", "10"))

    # Basic app settings
    DEBUG = False

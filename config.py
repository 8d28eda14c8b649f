import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite file next to the app by default; use postgres/mysql in production for row locks
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "salonslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "salonslot_session"

    # 8 hours session lifetime, 30 minutes idle timeout
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 30 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
    CSRF_ENABLED = True

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Booking transactions retried this many times on deadlock / lock timeout
    BOOKING_TX_RETRIES = int(os.getenv("BOOKING_TX_RETRIES", "3"))

    # `flask populate-availability` defaults (9 AM to 6 PM, next 30 days)
    AVAILABILITY_DAYS_AHEAD = int(os.getenv("AVAILABILITY_DAYS_AHEAD", "30"))
    DEFAULT_TIME_SLOTS = [
        "09:00:00", "10:00:00", "11:00:00", "12:00:00", "13:00:00",
        "14:00:00", "15:00:00", "16:00:00", "17:00:00", "18:00:00",
    ]

    # Admin listings
    LIST_LIMIT = 200

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CSRF_ENABLED = False
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "DEBUG"

import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets (also keys the OTP code hashes)
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as usergy_auth.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "usergy_auth.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # The two product applications, each on its own subdomain
    USER_APP_DOMAIN = os.getenv("USER_APP_DOMAIN", "user.usergy.ai")
    CLIENT_APP_DOMAIN = os.getenv("CLIENT_APP_DOMAIN", "client.usergy.ai")

    # Email OTP (signup)
    OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))
    OTP_EMAIL_SUBJECT = os.getenv("OTP_EMAIL_SUBJECT", "Your Usergy Verification Code")

    # Per (identifier, action) throttle
    RATE_LIMIT_MAX_ATTEMPTS = int(os.getenv("RATE_LIMIT_MAX_ATTEMPTS", "5"))
    RATE_LIMIT_WINDOW_MINUTES = int(os.getenv("RATE_LIMIT_WINDOW_MINUTES", "15"))
    RATE_LIMIT_BLOCK_MINUTES = 60  # fixed, independent of the window

    # Pending passwords are bcrypt-hashed before they sit in an OTP row
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "Usergy <noreply@usergy.ai>")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    # "auto": send when SMTP_HOST is set, "false": log instead of sending
    SMTP_ENABLED = os.getenv("SMTP_ENABLED", "auto").lower()

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    USER_APP_DOMAIN = "user.example"
    CLIENT_APP_DOMAIN = "client.example"
    BCRYPT_ROUNDS = 4
    SMTP_ENABLED = "false"

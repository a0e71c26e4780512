"""
Service configuration - read from environment variables.
Values that tests override at runtime are exposed through accessor functions.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/records.db")

# CORS origins allowed to call the API (comma-separated)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "https://peterkamesa.github.io,http://localhost:3001,http://localhost:5501"
    ).split(",")
    if origin.strip()
]

# Email relay configuration
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_TIMEOUT_SEC = int(os.getenv("SMTP_TIMEOUT_SEC", "30"))
EMAIL_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME", "Weather System")

# Station tokens
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "8"))

# Google Drive copy integration
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_DRIVE_API = "https://www.googleapis.com/drive/v3"
GOOGLE_HTTP_TIMEOUT_SEC = int(os.getenv("GOOGLE_HTTP_TIMEOUT_SEC", "30"))

# Version string
VERSION = "1.0.0"


def get_db_path() -> str:
    """Database path, re-read so tests can point at a temporary file."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def get_email_credentials():
    """Return (user, password) for the SMTP relay; either may be None."""
    return os.getenv("EMAIL_USER"), os.getenv("EMAIL_PASS")


def get_recipient_email():
    """Address that receives contact form notifications, or None."""
    return os.getenv("RECIPIENT_EMAIL")


def get_jwt_secret():
    """Signing secret for station tokens, or None when not configured."""
    return os.getenv("JWT_SECRET")


def get_google_credentials():
    """Return (client_id, client_secret, refresh_token) for the Drive API."""
    return (
        os.getenv("GOOGLE_CLIENT_ID"),
        os.getenv("GOOGLE_CLIENT_SECRET"),
        os.getenv("GOOGLE_REFRESH_TOKEN"),
    )


def get_stations_config_path():
    """Path to the station directory JSON file, or None for built-in defaults."""
    return os.getenv("STATIONS_CONFIG_PATH")


def validate_notification_config():
    """Validate email relay configuration and return any issues."""
    issues = []

    user, password = get_email_credentials()
    if not user:
        issues.append("EMAIL_USER is not set - email relay disabled")
    if not password:
        issues.append("EMAIL_PASS is not set - email relay disabled")
    if not get_recipient_email():
        issues.append("RECIPIENT_EMAIL is not set - contact notifications disabled")

    if SMTP_PORT < 1:
        issues.append("SMTP_PORT must be >= 1")

    return issues

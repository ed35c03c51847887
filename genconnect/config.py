"""Environment-driven configuration loaded once at import time"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./genconnect.db")
AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES", True)

# Redis (empty disables cross-process chat fan-out)
REDIS_URL = os.getenv("REDIS_URL", "")

# Authentication
JWT_SECRET = os.getenv("JWT_SECRET", "genconnect_secret_key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "24"))

# Email (SendGrid)
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "")
SENDER_EMAIL = os.getenv("SENDER_EMAIL", "")

# Meeting links
MEETING_BASE_URL = os.getenv("MEETING_BASE_URL", "https://meet.google.com")

# Session requests
REQUEST_TTL_HOURS = int(os.getenv("REQUEST_TTL_HOURS", "24"))
EXPIRY_SWEEP_MINUTES = int(os.getenv("EXPIRY_SWEEP_MINUTES", "15"))

APP_DEBUG = _env_bool("APP_DEBUG", False)

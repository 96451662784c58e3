# homecare/config.py

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./homecare.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

# Auth
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

# Seed admin account
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@homecare.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# Business rules
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Santiago")
MIN_HOURS_BEFORE_CANCEL = float(os.getenv("MIN_HOURS_BEFORE_CANCEL", "2"))
# JSON list of {"day_of_week", "start_time", "end_time", "slot_duration", "max_bookings"}
# used when no availability rule matches a day. "[]" disables the fallback.
DEFAULT_SCHEDULE = os.getenv("DEFAULT_SCHEDULE")
SEARCH_RESULTS_LIMIT = int(os.getenv("SEARCH_RESULTS_LIMIT", "10"))
BOOKING_MAX_ATTEMPTS = int(os.getenv("BOOKING_MAX_ATTEMPTS", "3"))

# Pagination
PAGE_SIZE_DEFAULT = int(os.getenv("PAGE_SIZE_DEFAULT", "50"))
PAGE_SIZE_MAX = int(os.getenv("PAGE_SIZE_MAX", "100"))

# Frontend base URL for CORS and links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CANCEL_URL_TEMPLATE = os.getenv("CANCEL_URL_TEMPLATE", "/cancelar-cita/{token}")

# Resend email configuration (emails are skipped when no key is set)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Home Care <citas@homecare.local>")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

import os
from pathlib import Path
from dotenv import load_dotenv

# .env лежит рядом с пакетом, как и база по умолчанию
load_dotenv(Path(__file__).with_name(".env"))


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(name: str) -> list[str]:
    value = os.getenv(name) or ""
    return [item.strip() for item in value.split(",") if item.strip()]


DATABASE_URL = os.getenv("DATABASE_URL")
DEFAULT_TIME_ZONE = os.getenv("DEFAULT_TIME_ZONE") or "UTC"

APP_ADMINS = _get_list("APP_ADMINS")

FRONTEND_URL = (os.getenv("FRONTEND_URL") or "http://localhost:8000").rstrip("/")

EMAIL_SENDER_ADDRESS = os.getenv("EMAIL_SENDER_ADDRESS") or "noreply@peerfeedback.local"
EMAIL_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME") or "Peer Feedback"
ENABLE_EMAIL = _get_bool("ENABLE_EMAIL", False)
SMTP_HOST = os.getenv("SMTP_HOST") or "localhost"
SMTP_PORT = int(os.getenv("SMTP_PORT") or 25)
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = _get_bool("SMTP_USE_TLS", False)

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

MAX_KEY_REGENERATION_TRIES = int(os.getenv("MAX_KEY_REGENERATION_TRIES") or 10)

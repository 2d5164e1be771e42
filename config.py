"""
Configuration for the room status reconciliation service.

Values come from the environment, optionally seeded from a .env file.
"""
import os
import logging
import secrets

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH = os.environ.get("DB_PATH") or os.path.join(BASE_DIR, "hotel.db")
FLASK_ENV = os.environ.get("FLASK_ENV", "development")

HOTEL_TIMEZONE = os.environ.get("HOTEL_TIMEZONE", "Asia/Kolkata")

LOG_FILE = os.environ.get("LOG_FILE") or os.path.join(BASE_DIR, "app.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int, minimum: int = 1) -> int:
    try:
        value = int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default
    return max(value, minimum)


# Reconciliation settings
RECONCILE_MAX_WORKERS = env_int("RECONCILE_MAX_WORKERS", 4)
RECONCILE_MARK_NO_SHOWS = env_flag("RECONCILE_MARK_NO_SHOWS", True)
SQLITE_BUSY_TIMEOUT = env_int("SQLITE_BUSY_TIMEOUT", 10)


def get_secret_key() -> str:
    # Never a hardcoded default; a per-process key invalidates sessions on restart
    secret_key = os.environ.get("SECRET_KEY")
    if not secret_key:
        secret_key = secrets.token_hex(32)
        logging.getLogger(__name__).warning(
            "SECRET_KEY not set in environment. Using generated key; "
            "set SECRET_KEY in .env for production."
        )
    return secret_key


def configure_logging(log_file: str | None = None, level: str | None = None):
    """Configure root logging for entry points (web app, cron script)."""
    handlers = [logging.StreamHandler()]
    target = log_file or LOG_FILE
    if target:
        handlers.insert(0, logging.FileHandler(target))

    logging.basicConfig(
        level=getattr(logging, level or LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )

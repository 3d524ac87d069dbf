"""Runtime configuration read from the environment (and an optional .env file)"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _parse_int(name: str) -> Optional[int]:
    """Blank or malformed values read as unset; malformed ones are logged"""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return None


def _int(name: str, default: int) -> int:
    value = _parse_int(name)
    return default if value is None else value


def _optional_int(name: str) -> Optional[int]:
    return _parse_int(name)


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# JWT
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-keep-it-secret")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int("ACCESS_TOKEN_EXPIRE_MINUTES", 30)

# Admin inventory channel
ADMIN_SOCKET_HOST = os.getenv("ADMIN_SOCKET_HOST", "127.0.0.1")
ADMIN_SOCKET_PORT = _int("ADMIN_SOCKET_PORT", 9090)
ADMIN_SOCKET_ENABLED = _bool("ADMIN_SOCKET_ENABLED", True)
# unset: sessions never expire
ADMIN_SESSION_TTL_MINUTES = _optional_int("ADMIN_SESSION_TTL_MINUTES")
ADMIN_SOCKET_READ_TIMEOUT_SECONDS = _int("ADMIN_SOCKET_READ_TIMEOUT_SECONDS", 30)

# Operator seeded at startup; no ADMIN_EMAIL means no channel admin
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# Default HTTP admin account
HTTP_ADMIN_USERNAME = os.getenv("HTTP_ADMIN_USERNAME", "admin")
HTTP_ADMIN_PASSWORD = os.getenv("HTTP_ADMIN_PASSWORD", "admin123")

BOOKINGS_LOG_PATH = os.getenv("BOOKINGS_LOG_PATH", "bookings.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

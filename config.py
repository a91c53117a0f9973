"""Configuration module - loads settings from .env file."""

import logging
import os

from dotenv import load_dotenv

# A missing .env is fine for tests and local runs; BOT_TOKEN is checked at bot start
load_dotenv()

logger = logging.getLogger(__name__)


def get_required(key: str) -> str:
    """Get required env var; log warning and raise if missing."""
    value = os.getenv(key)
    if not value or not value.strip():
        logger.warning("Missing or empty required key in .env: %s", key)
        raise ValueError(f"Missing required environment variable: {key}")
    return value.strip()


def _parse_int_list(value: str | None) -> list[int]:
    """Parse comma-separated string of integers into list[int].
    Handles both '1,2,3' and '[1,2,3]' formats; malformed entries are dropped.
    """
    if not value or not value.strip():
        return []
    raw = value.strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1]
    result: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            result.append(int(part))
        except ValueError:
            logger.warning("Ignoring malformed integer in .env list: %s", part)
    return result


def _parse_clock_list(value: str | None) -> list[str]:
    """Parse comma-separated HH:MM values; malformed entries are dropped."""
    if not value or not value.strip():
        return []
    result: list[str] = []
    for part in value.split(","):
        part = part.strip()
        hh, sep, mm = part.partition(":")
        if sep and hh.isdigit() and mm.isdigit() and int(hh) < 24 and int(mm) < 60 and len(mm) == 2:
            result.append(f"{int(hh):02d}:{mm}")
        elif part:
            logger.warning("Ignoring malformed clock preset in .env: %s", part)
    return result


def _parse_bool(value: str | None) -> bool:
    """Parse string to bool; default False for missing/invalid."""
    if not value:
        return False
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s in .env: %r, using %d", key, raw, default)
        return default


def _parse_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s in .env: %r, using %s", key, raw, default)
        return default


# Telegram (BOT_TOKEN is required only when the bot is started)
BOT_TOKEN: str = os.getenv("BOT_TOKEN", "").strip()
ADMIN_ID: int = _parse_int("ADMIN_ID", 0)
WHITELIST: list[int] = _parse_int_list(os.getenv("WHITELIST"))

# Scheduler state
STATE_FILE: str = os.getenv("STATE_FILE", "data/scheduler-state.json").strip()
DEFAULT_GAP_MINUTES: int = _parse_int("DEFAULT_GAP_MINUTES", 15)
if DEFAULT_GAP_MINUTES <= 0:
    logger.warning("DEFAULT_GAP_MINUTES must be positive, using 15")
    DEFAULT_GAP_MINUTES = 15
TICK_INTERVAL_SECONDS: float = _parse_float("TICK_INTERVAL_SECONDS", 1.0)
NOTIFY_ON_COMPLETE: bool = _parse_bool(os.getenv("NOTIFY_ON_COMPLETE", "true"))

# Quick-add presets
GAP_PRESETS: list[int] = [
    m for m in _parse_int_list(os.getenv("GAP_PRESETS", "15,30,60,120")) if m > 0
]
WAIT_PRESETS: list[str] = _parse_clock_list(
    os.getenv("WAIT_PRESETS", "08:00,09:00,12:00,18:00")
)

# Logging
LOG_FILE: str = os.getenv("LOG_FILE", "logs/app.log").strip()
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

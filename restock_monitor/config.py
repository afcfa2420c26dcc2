"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
from typing import Optional, List
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _get_list(name: str) -> list[str]:
    raw = _get_env(name, "") or ""
    return [s.strip() for s in raw.split(",") if s.strip()]


# ---- Core monitoring config --------------------------------------------------

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# Path to the SQLite stock ledger (baseline of the previous run).
LEDGER_DB_PATH: str = _get_env("LEDGER_DB_PATH", "stock.db")

# Directory holding the per-source inventory JSON files.
INVENTORY_DIR: str = _get_env("INVENTORY_DIR", "inventory")

# Comma-separated source keys to monitor. Empty means every registered source.
ENABLED_SOURCES: List[str] = [s.upper() for s in _get_list("ENABLED_SOURCES")]

# Interval in minutes between runs when looping.
CHECK_INTERVAL_MINUTES: int = _parse_int(_get_env("CHECK_INTERVAL_MINUTES", "15"), 15)

# Timezone used for the timestamp shown in notifications.
TIMEZONE: str = _get_env("TIMEZONE", "Asia/Singapore")

# Keep the previous baseline (and stay quiet) when every fetch of a source failed.
SKIP_UNREACHABLE_SOURCES: bool = _parse_bool(_get_env("SKIP_UNREACHABLE_SOURCES", "false"), False)

# ---- HTTP fetching ------------------------------------------------------------

REQUEST_TIMEOUT_SECONDS: float = _parse_float(_get_env("REQUEST_TIMEOUT_SECONDS", "20"), 20.0)

# Delay between product page requests for sequential sources (seconds).
REQUEST_DELAY_SECONDS: float = _parse_float(_get_env("REQUEST_DELAY_SECONDS", "0"), 0.0)

# Attempts per request (network errors and 5xx are retried).
HTTP_MAX_ATTEMPTS: int = max(1, _parse_int(_get_env("HTTP_MAX_ATTEMPTS", "3"), 3))

# Thread pool size for sources that are fetched in parallel.
MAX_WORKERS: int = max(1, _parse_int(_get_env("MAX_WORKERS", "8"), 8))

# ---- Notification channels --------------------------------------------------

TELEGRAM_BOT_TOKEN: Optional[str] = _get_env("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID: Optional[str] = _get_env("TELEGRAM_CHAT_ID")
TELEGRAM_API_URL: str = _get_env("TELEGRAM_API_URL", "https://api.telegram.org")

# Discord webhook URL (optional second channel).
DISCORD_WEBHOOK_URL: Optional[str] = _get_env("DISCORD_WEBHOOK_URL")

# ---- Email notifications -----------------------------------------------------

EMAIL_ENABLED: bool = _parse_bool(_get_env("EMAIL_ENABLED", "false"), False)
EMAIL_SMTP_HOST: str = _get_env("EMAIL_SMTP_HOST", "smtp.gmail.com")
EMAIL_SMTP_PORT: int = _parse_int(_get_env("EMAIL_SMTP_PORT", "587"), 587)  # 587 (TLS) or 465 (SSL)
EMAIL_USE_TLS: bool = _parse_bool(_get_env("EMAIL_USE_TLS", "true"), True)  # if False and port=465, SSL will be used
EMAIL_USERNAME: str | None = _get_env("EMAIL_USERNAME")
EMAIL_PASSWORD: str | None = _get_env("EMAIL_PASSWORD")  # app password if using Gmail
EMAIL_FROM: str | None = _get_env("EMAIL_FROM")
EMAIL_TO: list[str] = _get_list("EMAIL_TO")  # comma-separated
EMAIL_SUBJECT_PREFIX: str = _get_env("EMAIL_SUBJECT_PREFIX", "[Restock]")

# ---- Trigger server ----------------------------------------------------------

SERVER_HOST: str = _get_env("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = _parse_int(_get_env("PORT", _get_env("SERVER_PORT", "3000")), 3000)


# ---- Per-source overrides ----------------------------------------------------

def source_override(key: str, field: str) -> Optional[str]:
    """Return the raw ``<KEY>_<FIELD>`` env value for a source, if set."""
    return _get_env(f"{key.upper()}_{field.upper()}")


# ---- Validation --------------------------------------------------------------

def telegram_configured() -> bool:
    return bool(TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID)


def validate() -> None:
    """Validate required configuration parameters."""
    if not (telegram_configured() or DISCORD_WEBHOOK_URL or EMAIL_ENABLED):
        raise RuntimeError(
            "No notification channel configured. Set TELEGRAM_BOT_TOKEN and "
            "TELEGRAM_CHAT_ID, DISCORD_WEBHOOK_URL, or EMAIL_ENABLED. See .env.example."
        )


__all__ = [
    # Core
    "LOG_LEVEL",
    "LEDGER_DB_PATH",
    "INVENTORY_DIR",
    "ENABLED_SOURCES",
    "CHECK_INTERVAL_MINUTES",
    "TIMEZONE",
    "SKIP_UNREACHABLE_SOURCES",
    # HTTP
    "REQUEST_TIMEOUT_SECONDS",
    "REQUEST_DELAY_SECONDS",
    "HTTP_MAX_ATTEMPTS",
    "MAX_WORKERS",
    # Channels
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "TELEGRAM_API_URL",
    "DISCORD_WEBHOOK_URL",
    "EMAIL_ENABLED", "EMAIL_SMTP_HOST", "EMAIL_SMTP_PORT", "EMAIL_USE_TLS",
    "EMAIL_USERNAME", "EMAIL_PASSWORD", "EMAIL_FROM", "EMAIL_TO", "EMAIL_SUBJECT_PREFIX",
    # Server
    "SERVER_HOST",
    "SERVER_PORT",
    # Helpers
    "source_override",
    "telegram_configured",
    "validate",
]

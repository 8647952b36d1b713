"""
Shared configuration for the tile wall core.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("tilewall")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(env_name: str, default: float) -> float:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Database settings
DB_BACKEND = os.environ.get("DB_BACKEND", "postgres").strip().lower()
SQLITE_PATH = os.environ.get("SQLITE_PATH", "/data/tilewall.db")
DATABASE_URL = os.environ.get("DATABASE_URL")
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)

# Walls: the one capacity table every component consults
DEFAULT_WALL_SLUG = "m"
WALL_CAPACITIES = {
    "m": 1_000_000,
    "m2": 10_000_000,
    "m3": 100_000_000,
}
WALL_LABELS = {
    "m": "M · The First Wall",
    "m2": "M² · The Second Wall",
    "m3": "M³ · The Third Wall",
}
MAX_TILES_PER_PAGE = 2_000

# Drafts count toward "filled" in the status projection unless disabled.
FILL_COUNT_INCLUDES_DRAFTS = _get_bool("FILL_COUNT_INCLUDES_DRAFTS", True)

# Image moderation: "advisory" logs only, "enforce" classifies and fails closed
IMAGE_MODERATION_POLICY = os.environ.get("IMAGE_MODERATION_POLICY", "advisory").strip().lower()

# Moderation provider
MODERATION_PROVIDER = os.environ.get("MODERATION_PROVIDER", "openai").strip().lower()
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
MODERATION_MODEL = os.environ.get("MODERATION_MODEL", "omni-moderation-latest")
MODERATION_TIMEOUT_SECONDS = _get_float("MODERATION_TIMEOUT_SECONDS", 10.0)
MODERATION_FAILURE_THRESHOLD = _get_int("MODERATION_FAILURE_THRESHOLD", 5)
MODERATION_COOLDOWN_SECONDS = _get_int("MODERATION_COOLDOWN_SECONDS", 60)

# Payments
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
STRIPE_PRICE_TILE = os.environ.get("STRIPE_PRICE_TILE")
SITE_URL = os.environ.get("SITE_URL")
DEFAULT_BASE_URL = "http://localhost:3000"

# Request/input limits
MAX_TITLE_LENGTH = _get_int("TILEWALL_MAX_TITLE_LENGTH", 200)
MAX_BODY_LENGTH = _get_int("TILEWALL_MAX_BODY_LENGTH", 5000)
MAX_AUTHOR_LENGTH = _get_int("TILEWALL_MAX_AUTHOR_LENGTH", 100)
MAX_IMAGE_URL_LENGTH = _get_int("TILEWALL_MAX_IMAGE_URL_LENGTH", 2000)
MAX_IMAGE_DATA_LENGTH = _get_int("TILEWALL_MAX_IMAGE_DATA_LENGTH", 4_000_000)
MAX_REQUEST_BODY_BYTES = _get_int("TILEWALL_MAX_REQUEST_BODY_BYTES", 5_000_000)
PREVIEW_FETCH_TIMEOUT_SECONDS = _get_float("PREVIEW_FETCH_TIMEOUT_SECONDS", 5.0)


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL

    errors = []
    if DB_BACKEND not in {"postgres", "sqlite"}:
        errors.append("DB_BACKEND must be 'postgres' or 'sqlite'")

    if not DATABASE_URL:
        if DB_BACKEND == "sqlite":
            if not SQLITE_PATH:
                errors.append("SQLITE_PATH environment variable is required for sqlite")
            else:
                DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
        else:
            errors.append("DATABASE_URL environment variable is required")
    else:
        is_sqlite_url = DATABASE_URL.lower().startswith("sqlite")
        if DB_BACKEND == "sqlite" and not is_sqlite_url:
            errors.append("DATABASE_URL must be a sqlite URL when DB_BACKEND=sqlite")
        if DB_BACKEND == "postgres" and is_sqlite_url:
            errors.append("DATABASE_URL must be a postgres URL when DB_BACKEND=postgres")

    if DEFAULT_WALL_SLUG not in WALL_CAPACITIES:
        errors.append("DEFAULT_WALL_SLUG must have an entry in WALL_CAPACITIES")
    if any(capacity <= 0 for capacity in WALL_CAPACITIES.values()):
        errors.append("WALL_CAPACITIES values must be positive")

    if IMAGE_MODERATION_POLICY not in {"advisory", "enforce"}:
        errors.append("IMAGE_MODERATION_POLICY must be 'advisory' or 'enforce'")
    if MODERATION_PROVIDER not in {"openai", "none"}:
        errors.append("MODERATION_PROVIDER must be 'openai' or 'none'")
    if MODERATION_PROVIDER == "none" and IMAGE_MODERATION_POLICY == "enforce":
        errors.append("IMAGE_MODERATION_POLICY=enforce requires a moderation provider")

    if MODERATION_PROVIDER == "openai" and not OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; every submission will fail moderation.")
    if MODERATION_PROVIDER == "none":
        logger.warning("MODERATION_PROVIDER=none; text moderation is disabled.")
    if not STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout is unavailable.")
    if not STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhooks will be refused.")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))

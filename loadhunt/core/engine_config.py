"""
Matching engine config. .env is the source of truth; these defaults apply only when
the env var is unset. All values read at import time.

Env vars: MISSED_AFTER_MINUTES, BACKFILL_LOOKBACK_MINUTES, MISSED_SWEEP_SECONDS,
EXPIRATION_SWEEP_SECONDS, REMATCH_SECONDS, ENGINE_REMATCH_WINDOW_MINUTES,
DEFAULT_RADIUS_MILES, EXPIRY_FALLBACK_HOURS, EXPIRY_BATCH_SIZE, GEOCODE_CACHE_TTL_SECONDS,
GEOCODE_PREFETCH_TIMEOUT_SECONDS, GEOCODE_MAX_WORKERS, ENGINE_TIMEZONE.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load project .env so scripts/tests/workers that import engine_config see env vars too
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path, override=False)  # load_dotenv no-ops if file missing

_log = logging.getLogger(__name__)


def _int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = int(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


def _str(key: str, default: str) -> str:
    return (os.environ.get(key) or "").strip() or default


# -----------------------------------------------------------------------------
# Lifecycle windows
# -----------------------------------------------------------------------------
# An active match on a still-new offer counts as missed after this many minutes
MISSED_AFTER_MINUTES = _int("MISSED_AFTER_MINUTES", 15, min_val=1, max_val=240)
# Enabling a plan scans offers received within this window before going forward-only
BACKFILL_LOOKBACK_MINUTES = _int("BACKFILL_LOOKBACK_MINUTES", 15, min_val=1, max_val=240)
# Offers without expires_at or a usable pickup date expire this long after matched_at
EXPIRY_FALLBACK_HOURS = _int("EXPIRY_FALLBACK_HOURS", 2, min_val=1, max_val=72)
EXPIRY_BATCH_SIZE = _int("EXPIRY_BATCH_SIZE", 100, min_val=10, max_val=1000)
# Pickup dates are calendar dates in this zone (used for the pickup-derived deadline)
ENGINE_TIMEZONE = _str("ENGINE_TIMEZONE", "America/New_York")

# -----------------------------------------------------------------------------
# Scheduler intervals
# -----------------------------------------------------------------------------
MISSED_SWEEP_SECONDS = _int("MISSED_SWEEP_SECONDS", 30, min_val=5, max_val=600)
EXPIRATION_SWEEP_SECONDS = _int("EXPIRATION_SWEEP_SECONDS", 30, min_val=5, max_val=600)
REMATCH_SECONDS = _int("REMATCH_SECONDS", 60, min_val=10, max_val=3600)
# Backup rematch only reconsiders new offers received within this window
ENGINE_REMATCH_WINDOW_MINUTES = _int("ENGINE_REMATCH_WINDOW_MINUTES", 120, min_val=5, max_val=1440)

# -----------------------------------------------------------------------------
# Matching and geocoding
# -----------------------------------------------------------------------------
DEFAULT_RADIUS_MILES = _int("DEFAULT_RADIUS_MILES", 100, min_val=1, max_val=3000)
# 0 = cache for the process lifetime
GEOCODE_CACHE_TTL_SECONDS = _int("GEOCODE_CACHE_TTL_SECONDS", 0, min_val=0)
GEOCODE_PREFETCH_TIMEOUT_SECONDS = _int("GEOCODE_PREFETCH_TIMEOUT_SECONDS", 5, min_val=1, max_val=60)
GEOCODE_MAX_WORKERS = _int("GEOCODE_MAX_WORKERS", 4, min_val=1, max_val=32)

# Log effective config at import so each environment can verify env vars are applied
_log.info(
    "Engine config (from env): missed_after_min=%s backfill_lookback_min=%s rematch_sec=%s "
    "rematch_window_min=%s default_radius=%s geocode_ttl_sec=%s timezone=%s",
    MISSED_AFTER_MINUTES,
    BACKFILL_LOOKBACK_MINUTES,
    REMATCH_SECONDS,
    ENGINE_REMATCH_WINDOW_MINUTES,
    DEFAULT_RADIUS_MILES,
    GEOCODE_CACHE_TTL_SECONDS,
    ENGINE_TIMEZONE,
)


@dataclass(frozen=True)
class EngineConfig:
    """Snapshot of engine config for passing around (e.g. tests)."""
    missed_after_minutes: int = MISSED_AFTER_MINUTES
    backfill_lookback_minutes: int = BACKFILL_LOOKBACK_MINUTES
    expiry_fallback_hours: int = EXPIRY_FALLBACK_HOURS
    expiry_batch_size: int = EXPIRY_BATCH_SIZE
    timezone: str = ENGINE_TIMEZONE
    rematch_window_minutes: int = ENGINE_REMATCH_WINDOW_MINUTES
    default_radius_miles: int = DEFAULT_RADIUS_MILES
    geocode_prefetch_timeout_seconds: int = GEOCODE_PREFETCH_TIMEOUT_SECONDS


def get_engine_config() -> EngineConfig:
    return EngineConfig()

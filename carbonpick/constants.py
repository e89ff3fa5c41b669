"""Centralized constants for carbonpick.

All magic strings, paths, and defaults are defined here to ensure
consistency throughout the codebase.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

# =============================================================================
# Time
# =============================================================================

HOURS_PER_DAY: Final[int] = 24
DAYS_PER_YEAR: Final[int] = 365
HOURS_PER_YEAR: Final[int] = HOURS_PER_DAY * DAYS_PER_YEAR

# =============================================================================
# Carbon API
# =============================================================================

ENDPOINT_ENV_VAR: Final[str] = "BOAVIZTA_ENDPOINT_URL"
DEFAULT_TIMEOUT: Final[float] = 30.0
DEFAULT_RETRIES: Final[int] = 3
CRITERIA_GWP: Final[str] = "gwp"

# =============================================================================
# Usage profile defaults
# =============================================================================

DEFAULT_USE_TIME_RATIO: Final[float] = 1.0
DEFAULT_USAGE_LOCATION: Final[str] = "WOR"
DEFAULT_HOURS_LIFE_TIME: Final[int] = HOURS_PER_YEAR

# The same cluster, run in Sweden over 8 years
COMPARE_USAGE_LOCATION: Final[str] = "SWE"
COMPARE_HOURS_LIFE_TIME: Final[int] = 8 * HOURS_PER_YEAR

# =============================================================================
# Providers
# =============================================================================

PROVIDER_NAMES: Final[dict[str, str]] = {
    "aws": "AWS",
    "alces": "Alces Cloud",
}

# =============================================================================
# Local state
# =============================================================================

HOME_DIR: Final[Path] = Path.home() / ".carbonpick"
CACHE_DIR: Final[Path] = HOME_DIR / "cache"
GLOBAL_CONFIG_PATH: Final[Path] = HOME_DIR / "defaults.toml"
PROJECT_CONFIG_NAME: Final[str] = "carbonpick.toml"
CATALOG_FILE_SUFFIX: Final[str] = "_instances.json"
DEFAULT_MAX_WORKERS: Final[int] = 8

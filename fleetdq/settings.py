"""Quality thresholds and runtime settings for the assessment engine.

Defaults live here as frozen dataclasses; environment variables (optionally
from a .env file) override the user-facing settings and the session seed.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Literal

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

Grade = Literal["Good", "Acceptable", "Poor"]

GRADE_GOOD: Grade = "Good"
GRADE_ACCEPTABLE: Grade = "Acceptable"
GRADE_POOR: Grade = "Poor"

_TRUE_VALUES = ("1", "true", "yes")


@dataclass(frozen=True)
class QualityThresholds:
    completeness_good: float = 95.0
    completeness_acceptable: float = 85.0
    correctness_good: float = 98.0
    correctness_acceptable: float = 90.0

    def grade_for(self, completeness: float, correctness: float) -> Grade:
        if completeness >= self.completeness_good and correctness >= self.correctness_good:
            return GRADE_GOOD
        if completeness >= self.completeness_acceptable and correctness >= self.correctness_acceptable:
            return GRADE_ACCEPTABLE
        return GRADE_POOR


QUALITY_THRESHOLDS = QualityThresholds()

# Fleet distribution buckets by a vessel's overall score.
HEALTHY_SCORE = 85
AVERAGE_SCORE = 70

# Alert severity escalates to critical below this completeness.
CRITICAL_COMPLETENESS = 70.0

# "Recent missing data" rule, independent of alert_threshold.
RECENT_MISSING_DAYS = 3
RECENT_MISSING_COMPLETENESS = 50.0

HISTORY_CAPACITY = 30
ALERT_CAPACITY = 50

DEFAULT_SEED = 42


@dataclass(frozen=True)
class QualitySettings:
    enable_real_time_checks: bool = True
    alert_threshold: float = QUALITY_THRESHOLDS.completeness_acceptable
    auto_refresh: bool = True
    show_minor_issues: bool = False

    def __post_init__(self):
        validate_alert_threshold(self.alert_threshold)

    def with_updates(self, **changes) -> "QualitySettings":
        """Return a copy with the given fields replaced (unknown fields raise)."""
        return replace(self, **changes)


def validate_alert_threshold(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"alert_threshold must be numeric, got {type(value).__name__}")
    if value < 0 or value > 100:
        raise ValueError(f"alert_threshold must be between 0 and 100, got {value}")
    return float(value)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'") from exc


def load_settings() -> QualitySettings:
    """Build settings from FLEETDQ_* environment variables."""
    defaults = QualitySettings()
    settings = QualitySettings(
        enable_real_time_checks=_env_flag("FLEETDQ_REALTIME_CHECKS", defaults.enable_real_time_checks),
        alert_threshold=_env_float("FLEETDQ_ALERT_THRESHOLD", defaults.alert_threshold),
        auto_refresh=_env_flag("FLEETDQ_AUTO_REFRESH", defaults.auto_refresh),
        show_minor_issues=_env_flag("FLEETDQ_SHOW_MINOR_ISSUES", defaults.show_minor_issues),
    )
    logger.debug("Loaded quality settings: %s", settings)
    return settings


def load_seed() -> int:
    raw = os.environ.get("FLEETDQ_SEED", "").strip()
    if not raw:
        return DEFAULT_SEED
    try:
        seed = int(raw)
    except ValueError as exc:
        raise ValueError(f"FLEETDQ_SEED must be an integer, got '{raw}'") from exc
    if seed < 0:
        raise ValueError("FLEETDQ_SEED must be >= 0")
    return seed

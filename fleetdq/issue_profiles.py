"""Deterministic per-vessel issue profiles.

Each vessel gets a fixed number of missing and incorrect KPI issues from a
static pattern table (cycled by fleet position). The same profile drives the
quality cards, the fleet rollup and the fault injector, so every view of a
vessel shows the same problems.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Literal

import numpy as np

from scoring import score_counts
from settings import Grade, QUALITY_THRESHOLDS
from vessels import FLEET, Vessel

logger = logging.getLogger(__name__)

IssueType = Literal["completeness", "correctness"]
Severity = Literal["high", "medium", "low"]

# (missing, incorrect) per fleet position
ISSUE_PATTERNS: tuple[tuple[int, int], ...] = (
    (2, 3),
    (1, 1),
    (3, 2),
    (0, 4),
    (1, 2),
    (2, 1),
    (1, 3),
    (0, 2),
    (2, 2),
    (1, 1),
)

# Issues are assigned round-robin over these KPIs.
ISSUE_KPIS: tuple[str, ...] = ("wind_force", "me_power", "rpm", "me_consumption", "obs_speed")

MISSING_MESSAGE = "Sensor data unavailable"

# Correctness issue details by emission order; the last entry repeats.
_INCORRECT_DETAILS: tuple[tuple[Severity, str, float], ...] = (
    ("high", "Negative speed detected", -2.5),
    ("medium", "Consumption spike detected", 45.8),
    ("low", "RPM-speed correlation warning", 250.0),
)


@dataclass(frozen=True)
class Issue:
    type: IssueType
    kpi: str
    message: str
    severity: Severity
    original_value: float | None = None


@dataclass(frozen=True)
class IssueProfile:
    vessel_id: str
    vessel_name: str
    missing_count: int
    incorrect_count: int
    issues: tuple[Issue, ...]
    completeness: float
    correctness: float
    overall_score: int

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    @property
    def critical_issues(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "high")

    @property
    def grade(self) -> Grade:
        return QUALITY_THRESHOLDS.grade_for(self.completeness, self.correctness)

    def issue_for(self, kpi_id: str, issue_type: IssueType) -> Issue | None:
        """First issue of issue_type recorded against kpi_id."""
        for issue in self.issues:
            if issue.kpi == kpi_id and issue.type == issue_type:
                return issue
        return None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issues"] = [asdict(issue) for issue in self.issues]
        data["issue_count"] = self.issue_count
        data["critical_issues"] = self.critical_issues
        data["grade"] = self.grade
        return data


def issue_pattern(index: int) -> tuple[int, int]:
    if index < 0:
        raise ValueError(f"vessel index must be >= 0, got {index}")
    return ISSUE_PATTERNS[index % len(ISSUE_PATTERNS)]


def build_issues(missing: int, incorrect: int) -> tuple[Issue, ...]:
    issues: list[Issue] = []
    for i in range(missing):
        issues.append(
            Issue(
                type="completeness",
                kpi=ISSUE_KPIS[i % len(ISSUE_KPIS)],
                message=MISSING_MESSAGE,
                severity="medium",
            )
        )
    for i in range(incorrect):
        severity, message, original_value = _INCORRECT_DETAILS[min(i, len(_INCORRECT_DETAILS) - 1)]
        issues.append(
            Issue(
                type="correctness",
                kpi=ISSUE_KPIS[i % len(ISSUE_KPIS)],
                message=message,
                severity=severity,
                original_value=original_value,
            )
        )
    return tuple(issues)


def _vessel_at(index: int) -> Vessel:
    if index < len(FLEET):
        return FLEET[index]
    return Vessel(f"vessel_{index + 1}", f"Vessel {index + 1}")


def get_issue_profile(index: int, rng: np.random.Generator, vessel: Vessel | None = None) -> IssueProfile:
    """Build the issue profile for the vessel at fleet position index."""
    missing, incorrect = issue_pattern(index)
    vessel = vessel or _vessel_at(index)
    issues = build_issues(missing, incorrect)
    score = score_counts(missing, incorrect, issues, rng)
    return IssueProfile(
        vessel_id=vessel.id,
        vessel_name=vessel.name,
        missing_count=missing,
        incorrect_count=incorrect,
        issues=issues,
        completeness=score.completeness,
        correctness=score.correctness,
        overall_score=score.overall_score,
    )


def build_fleet_profiles(
    vessels: Iterable[Vessel],
    rng: np.random.Generator | None = None,
    rng_for: Callable[[int], np.random.Generator] | None = None,
) -> dict[str, IssueProfile]:
    """Profiles for every vessel keyed by vessel id, in fleet order.

    Pass rng_for to give each fleet position its own generator; a shared rng
    makes every score depend on the ones drawn before it.
    """
    if rng is None and rng_for is None:
        raise ValueError("build_fleet_profiles needs rng or rng_for")
    profiles: dict[str, IssueProfile] = {}
    for idx, vessel in enumerate(vessels):
        profiles[vessel.id] = get_issue_profile(idx, rng_for(idx) if rng_for else rng, vessel)
    logger.info("Built issue profiles for %d vessels", len(profiles))
    return profiles

"""Completeness/correctness scoring for a vessel's issue profile.

Scores carry a small random jitter so the demo fleet does not look
synthetic; the jitter comes from an injected numpy Generator so a seeded
session always produces the same scores.
"""

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from settings import QUALITY_THRESHOLDS, Grade, QualityThresholds

# Expected KPI count per vessel used to turn missing counts into a percentage.
TOTAL_KPIS = 8

COMPLETENESS_FLOOR = 40.0
CORRECTNESS_FLOOR = 30.0
JITTER_MAX = 5.0

# Penalty per correctness issue by severity, plus a flat penalty per incorrect issue.
SEVERITY_PENALTIES = {"high": 30, "medium": 15}
INCORRECT_PENALTY = 5


@dataclass(frozen=True)
class VesselScore:
    completeness: float
    correctness: float
    overall_score: int

    @property
    def grade(self) -> Grade:
        return grade_for(self.completeness, self.correctness)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (builtin round() is banker's)."""
    return int(math.floor(value + 0.5))


def grade_for(
    completeness: float, correctness: float, thresholds: QualityThresholds = QUALITY_THRESHOLDS
) -> Grade:
    return thresholds.grade_for(completeness, correctness)


def severity_penalty(issues: Iterable, incorrect_count: int) -> int:
    """Penalty from correctness issues: 30 per high, 15 per medium, 5 per incorrect."""
    high = 0
    medium = 0
    for issue in issues:
        if issue.type != "correctness":
            continue
        if issue.severity == "high":
            high += 1
        elif issue.severity == "medium":
            medium += 1
    return (
        SEVERITY_PENALTIES["high"] * high
        + SEVERITY_PENALTIES["medium"] * medium
        + INCORRECT_PENALTY * incorrect_count
    )


def score_counts(
    missing_count: int,
    incorrect_count: int,
    issues: Iterable,
    rng: np.random.Generator,
) -> VesselScore:
    # Draw order is part of the contract: completeness jitter first.
    completeness_jitter = rng.uniform(0.0, JITTER_MAX)
    correctness_jitter = rng.uniform(0.0, JITTER_MAX)

    completeness = max(
        COMPLETENESS_FLOOR,
        100.0 - (missing_count / TOTAL_KPIS) * 100.0 - completeness_jitter,
    )
    penalty = severity_penalty(issues, incorrect_count)
    correctness = max(CORRECTNESS_FLOOR, 100.0 - penalty - correctness_jitter)

    return VesselScore(
        completeness=float(completeness),
        correctness=float(correctness),
        overall_score=round_half_up((completeness + correctness) / 2),
    )


def score_vessel(profile, rng: np.random.Generator) -> VesselScore:
    """Score anything shaped like an IssueProfile (counts plus issue list)."""
    return score_counts(profile.missing_count, profile.incorrect_count, profile.issues, rng)

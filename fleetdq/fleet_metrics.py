from dataclasses import asdict, dataclass, field
from typing import Iterable

from scoring import round_half_up
from settings import AVERAGE_SCORE, HEALTHY_SCORE


@dataclass(frozen=True)
class VesselHealth:
    vessel_id: str
    name: str
    completeness: float
    correctness: float
    overall_score: int


@dataclass
class FleetMetrics:
    avg_completeness: int = 0
    avg_correctness: int = 0
    overall_health: int = 0
    total_issues: int = 0
    critical_issues: int = 0
    total_missing_issues: int = 0
    total_incorrect_issues: int = 0
    healthy_vessels: int = 0
    average_vessels: int = 0
    poor_vessels: int = 0
    total_vessels: int = 0
    # Unrounded mean behind avg_completeness
    completeness_mean: float = 0.0
    vessels: tuple[VesselHealth, ...] = field(default_factory=tuple)

    @property
    def score(self) -> int:
        return self.overall_health

    def to_dict(self) -> dict:
        data = asdict(self)
        data["vessels"] = [asdict(vessel) for vessel in self.vessels]
        return data


def health_bucket(overall_score: float) -> str:
    if overall_score >= HEALTHY_SCORE:
        return "healthy"
    if overall_score >= AVERAGE_SCORE:
        return "average"
    return "poor"


def aggregate_fleet(profiles: Iterable) -> FleetMetrics:
    """Fleet rollup over the full canonical profile set.

    Averages are reported rounded; overall health is the rounded mean of the
    unrounded completeness and correctness averages. Per-vessel scores ride
    along so alerting can work from the rollup alone.
    """
    profiles = list(profiles)
    if not profiles:
        return FleetMetrics()

    total = len(profiles)
    avg_completeness = sum(p.completeness for p in profiles) / total
    avg_correctness = sum(p.correctness for p in profiles) / total

    buckets = {"healthy": 0, "average": 0, "poor": 0}
    for profile in profiles:
        buckets[health_bucket(profile.overall_score)] += 1

    return FleetMetrics(
        avg_completeness=round_half_up(avg_completeness),
        avg_correctness=round_half_up(avg_correctness),
        overall_health=round_half_up((avg_completeness + avg_correctness) / 2),
        total_issues=sum(p.issue_count for p in profiles),
        critical_issues=sum(p.critical_issues for p in profiles),
        total_missing_issues=sum(p.missing_count for p in profiles),
        total_incorrect_issues=sum(p.incorrect_count for p in profiles),
        healthy_vessels=buckets["healthy"],
        average_vessels=buckets["average"],
        poor_vessels=buckets["poor"],
        total_vessels=total,
        completeness_mean=float(avg_completeness),
        vessels=tuple(
            VesselHealth(p.vessel_id, p.vessel_name, p.completeness, p.correctness, p.overall_score)
            for p in profiles
        ),
    )


@dataclass
class CoverageEstimate:
    data_points: int = 0
    estimated_missing_points: int = 0


def coverage_estimate(metrics: FleetMetrics, timestamp_count: int, vessel_count: int, kpi_count: int) -> CoverageEstimate:
    """Expected data points for a selection and how many are likely missing."""
    points = max(0, timestamp_count) * max(0, vessel_count) * max(0, kpi_count)
    completeness = metrics.completeness_mean or metrics.avg_completeness
    missing = round_half_up(points * (1 - completeness / 100))
    return CoverageEstimate(data_points=points, estimated_missing_points=max(0, missing))

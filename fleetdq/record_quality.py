"""Per-record quality assessment over injected time-series rows.

Rows from the fault injector are folded into one RecordQuality per
(timestamp, vessel). Those records roll up into QualityMetrics (overall, per
data frequency, per vessel, per issue type), which the alert generator and
the diagnostic assessment consume.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from fault_injection import TimeSeriesRow
from kpi_catalog import DEFAULT_CATALOG, SOURCES, KPICatalog
from settings import GRADE_POOR, QUALITY_THRESHOLDS, Grade
from vessels import Vessel

logger = logging.getLogger(__name__)

# Completion below this (per data type) is a systematic problem
SYSTEMATIC_COMPLETENESS = 80.0
SYSTEMATIC_CRITICAL = 60.0
# Vessel issues above this share of its records raise a warning
VESSEL_ISSUE_RATIO = 0.3

# Cross-validation tolerances between LF and HF readings
CONSUMPTION_DEVIATION_PCT = 15.0
SPEED_RPM_FACTOR = 30.0
SPEED_RPM_MIN_SPEED = 5.0

MISSING_PENALTY = 5
INVALID_PENALTY = 10
ALARM_PENALTY = 3


@dataclass(frozen=True)
class SourceQuality:
    expected: int = 0
    present: int = 0
    valid: int = 0

    @property
    def assessed(self) -> bool:
        return self.expected > 0

    @property
    def completeness(self) -> float:
        return self.present / self.expected * 100.0 if self.expected else 0.0

    @property
    def correctness(self) -> float:
        return self.valid / self.present * 100.0 if self.present else 100.0


@dataclass(frozen=True)
class RecordQuality:
    timestamp: pd.Timestamp
    vessel_id: str
    vessel_name: str
    lf: SourceQuality
    hf: SourceQuality
    issues: tuple[str, ...] = ()

    def for_source(self, source: str) -> SourceQuality:
        return self.lf if source.upper() == "LF" else self.hf

    def assessed_sources(self) -> list[SourceQuality]:
        return [sq for sq in (self.lf, self.hf) if sq.assessed]


@dataclass
class TypeQuality:
    completeness: float = 0.0
    correctness: float = 0.0


@dataclass
class VesselQuality:
    name: str
    record_count: int = 0
    lf: TypeQuality = field(default_factory=TypeQuality)
    hf: TypeQuality = field(default_factory=TypeQuality)
    completeness: float = 0.0
    correctness: float = 0.0
    issues: int = 0
    grade: Grade = GRADE_POOR


@dataclass
class OverallQuality:
    completeness: float = 0.0
    correctness: float = 0.0
    grade: Grade = GRADE_POOR
    score: float = 0.0


@dataclass
class QualityMetrics:
    overall: OverallQuality = field(default_factory=OverallQuality)
    by_data_type: dict[str, TypeQuality] = field(
        default_factory=lambda: {"lf": TypeQuality(), "hf": TypeQuality()}
    )
    by_vessel: dict[str, VesselQuality] = field(default_factory=dict)
    issue_types: dict[str, int] = field(
        default_factory=lambda: {"missing": 0, "out_of_range": 0, "cross_validation": 0, "other": 0}
    )
    record_count: int = 0
    last_assessment: datetime | None = None

    @property
    def assessed(self) -> bool:
        return self.last_assessment is not None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AssessmentIssue:
    type: str
    severity: str
    message: str
    data_type: str | None = None
    vessel_id: str | None = None


@dataclass
class Recommendation:
    priority: str
    action: str
    description: str


@dataclass
class QualitySummary:
    overall_grade: Grade
    critical_issues: int
    warning_issues: int
    recommendation_count: int


@dataclass
class QualityAssessment:
    timestamp: datetime
    issues: list[AssessmentIssue]
    recommendations: list[Recommendation]
    summary: QualitySummary


@dataclass
class RecordValidation:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    score: int = 100


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def _format_number(value: float) -> str:
    return f"{value:.2f}"


def _cross_validate(row: TimeSeriesRow, vessel_id: str) -> list[str]:
    """LF vs HF consistency checks, only meaningful for combined rows."""
    messages = []
    lf_cons = row.point(vessel_id, "me_consumption", "LF")
    hf_cons = row.point(vessel_id, "me_consumption", "HF")
    if lf_cons is not None and hf_cons is not None and lf_cons.value and hf_cons.value is not None:
        deviation = abs(lf_cons.value - hf_cons.value) / lf_cons.value * 100.0
        if deviation > CONSUMPTION_DEVIATION_PCT:
            messages.append(
                f"Fuel consumption cross-validation failed: LF {lf_cons.value:.1f}Mt vs "
                f"HF {hf_cons.value:.1f}Mt ({deviation:.1f}% deviation)"
            )

    speed = row.point(vessel_id, "obs_speed", "LF")
    rpm = row.point(vessel_id, "rpm", "HF")
    if speed is not None and rpm is not None and speed.value is not None and rpm.value is not None:
        expected_rpm = speed.value * SPEED_RPM_FACTOR
        if speed.value > SPEED_RPM_MIN_SPEED and (
            rpm.value < expected_rpm * 0.5 or rpm.value > expected_rpm * 2
        ):
            messages.append(
                f"Speed-RPM cross-validation inconsistent: {speed.value:.1f} kn vs {rpm.value:.0f} RPM"
            )
    return messages


def record_quality(
    rows: Iterable[TimeSeriesRow],
    vessels: Sequence[Vessel],
    kpis: Sequence[str],
    catalog: KPICatalog = DEFAULT_CATALOG,
) -> list[RecordQuality]:
    """Completeness/correctness per record (one vessel on one timestamp)."""
    records: list[RecordQuality] = []
    for row in rows:
        sources = SOURCES if row.data_type == "combined" else (row.data_type,)
        for vessel in vessels:
            counts = {src: [0, 0, 0] for src in SOURCES}
            issues: list[str] = []
            for source in sources:
                for kpi_id in kpis:
                    meta = catalog.lookup(kpi_id, source)
                    point = row.point(vessel.id, kpi_id, source if row.data_type == "combined" else None)
                    if meta is None or point is None:
                        continue
                    tally = counts[source]
                    tally[0] += 1
                    if point.value is None:
                        issues.append(f"Missing {meta.name}")
                        continue
                    tally[1] += 1
                    if meta.in_range(point.value):
                        tally[2] += 1
                    else:
                        issues.append(f"{meta.name} out of range: {_format_number(point.value)} {meta.unit}")
            if not counts["LF"][0] and not counts["HF"][0]:
                continue
            if row.data_type == "combined":
                issues.extend(_cross_validate(row, vessel.id))
            records.append(
                RecordQuality(
                    timestamp=row.timestamp,
                    vessel_id=vessel.id,
                    vessel_name=vessel.name,
                    lf=SourceQuality(*counts["LF"]),
                    hf=SourceQuality(*counts["HF"]),
                    issues=tuple(issues),
                )
            )
    return records


def classify_issue(message: str) -> str:
    lowered = message.lower()
    if "missing" in lowered:
        return "missing"
    if "out of range" in lowered:
        return "out_of_range"
    if "cross-validation" in lowered:
        return "cross_validation"
    return "other"


def _overall(completeness: float, correctness: float) -> OverallQuality:
    return OverallQuality(
        completeness=completeness,
        correctness=correctness,
        grade=QUALITY_THRESHOLDS.grade_for(completeness, correctness),
        score=(completeness + correctness) / 2,
    )


def assess_records(records: Sequence[RecordQuality], now: datetime | None = None) -> QualityMetrics:
    """Roll record-level quality up into QualityMetrics."""
    metrics = QualityMetrics()
    if not records:
        return metrics

    assessed_types = []
    for source in SOURCES:
        scored = [r.for_source(source) for r in records if r.for_source(source).assessed]
        if not scored:
            continue
        type_quality = TypeQuality(
            completeness=_mean([sq.completeness for sq in scored]),
            correctness=_mean([sq.correctness for sq in scored]),
        )
        metrics.by_data_type[source.lower()] = type_quality
        assessed_types.append(type_quality)

    metrics.overall = _overall(
        _mean([t.completeness for t in assessed_types]),
        _mean([t.correctness for t in assessed_types]),
    )

    by_vessel: dict[str, list[RecordQuality]] = {}
    for record in records:
        by_vessel.setdefault(record.vessel_id, []).append(record)

    for vessel_id, vessel_records in by_vessel.items():
        vessel_quality = VesselQuality(name=vessel_records[0].vessel_name, record_count=len(vessel_records))
        vessel_types = []
        for source in SOURCES:
            scored = [r.for_source(source) for r in vessel_records if r.for_source(source).assessed]
            if not scored:
                continue
            type_quality = TypeQuality(
                completeness=_mean([sq.completeness for sq in scored]),
                correctness=_mean([sq.correctness for sq in scored]),
            )
            setattr(vessel_quality, source.lower(), type_quality)
            vessel_types.append(type_quality)
        vessel_quality.completeness = _mean([t.completeness for t in vessel_types])
        vessel_quality.correctness = _mean([t.correctness for t in vessel_types])
        vessel_quality.issues = sum(len(r.issues) for r in vessel_records)
        vessel_quality.grade = QUALITY_THRESHOLDS.grade_for(vessel_quality.completeness, vessel_quality.correctness)
        metrics.by_vessel[vessel_id] = vessel_quality

    for record in records:
        for message in record.issues:
            metrics.issue_types[classify_issue(message)] += 1

    metrics.record_count = len(records)
    metrics.last_assessment = now or datetime.now(timezone.utc)
    logger.info(
        "Assessed %d records: completeness %.1f%%, correctness %.1f%%",
        metrics.record_count,
        metrics.overall.completeness,
        metrics.overall.correctness,
    )
    return metrics


def metrics_from_profiles(profiles: Mapping, now: datetime | None = None) -> QualityMetrics:
    """QualityMetrics built from the canonical issue profile scores.

    Each profile counts as one record whose LF and HF scores both equal the
    profile's completeness/correctness.
    """
    metrics = QualityMetrics()
    if not profiles:
        return metrics

    for vessel_id, profile in profiles.items():
        type_quality = TypeQuality(completeness=profile.completeness, correctness=profile.correctness)
        metrics.by_vessel[vessel_id] = VesselQuality(
            name=profile.vessel_name,
            record_count=1,
            lf=type_quality,
            hf=TypeQuality(profile.completeness, profile.correctness),
            completeness=profile.completeness,
            correctness=profile.correctness,
            issues=profile.issue_count,
            grade=profile.grade,
        )
        for issue in profile.issues:
            metrics.issue_types["missing" if issue.type == "completeness" else classify_issue(issue.message)] += 1

    completeness = _mean([p.completeness for p in profiles.values()])
    correctness = _mean([p.correctness for p in profiles.values()])
    metrics.by_data_type = {
        "lf": TypeQuality(completeness, correctness),
        "hf": TypeQuality(completeness, correctness),
    }
    metrics.overall = _overall(completeness, correctness)
    metrics.record_count = len(profiles)
    metrics.last_assessment = now or datetime.now(timezone.utc)
    return metrics


def perform_assessment(
    records: Sequence[RecordQuality], metrics: QualityMetrics, now: datetime | None = None
) -> QualityAssessment:
    """Diagnose systematic gaps and problem vessels, with recommendations."""
    issues: list[AssessmentIssue] = []
    recommendations: list[Recommendation] = []

    for source in SOURCES:
        scored = [r.for_source(source).completeness for r in records if r.for_source(source).assessed]
        if not scored:
            continue
        avg_completion = _mean(scored)
        if avg_completion < SYSTEMATIC_COMPLETENESS:
            issues.append(
                AssessmentIssue(
                    type="systematic_incompleteness",
                    severity="critical" if avg_completion < SYSTEMATIC_CRITICAL else "warning",
                    message=f"{source} data completion is {avg_completion:.1f}%",
                    data_type=source.lower(),
                )
            )
            recommendations.append(
                Recommendation(
                    priority="high",
                    action=f"Review {source} data collection processes",
                    description=f"{source} data completion is below {SYSTEMATIC_COMPLETENESS:.0f}%",
                )
            )

    for vessel_id, vessel in metrics.by_vessel.items():
        if vessel.issues > vessel.record_count * VESSEL_ISSUE_RATIO:
            issues.append(
                AssessmentIssue(
                    type="vessel_quality_issue",
                    severity="warning",
                    message=f"{vessel.name} has {vessel.issues} quality issues across {vessel.record_count} records",
                    vessel_id=vessel_id,
                )
            )

    summary = QualitySummary(
        overall_grade=metrics.overall.grade,
        critical_issues=sum(1 for i in issues if i.severity == "critical"),
        warning_issues=sum(1 for i in issues if i.severity == "warning"),
        recommendation_count=len(recommendations),
    )
    return QualityAssessment(
        timestamp=now or datetime.now(timezone.utc),
        issues=issues,
        recommendations=recommendations,
        summary=summary,
    )


def validate_record(
    values_by_source: Mapping[str, Mapping[str, float | None]],
    kpis_by_source: Mapping[str, Sequence[str]],
    catalog: KPICatalog = DEFAULT_CATALOG,
) -> RecordValidation:
    """Score one raw record: -5 per missing, -10 per invalid, -3 per HF alarm."""
    validation = RecordValidation()
    for source in SOURCES:
        values = values_by_source.get(source) or values_by_source.get(source.lower()) or {}
        kpi_ids = kpis_by_source.get(source) or kpis_by_source.get(source.lower()) or []
        for kpi_id in kpi_ids:
            meta = catalog.lookup(kpi_id, source)
            if meta is None:
                logger.warning("Skipping unknown KPI id: %s (%s)", kpi_id, source)
                continue
            value = values.get(kpi_id)
            if value is None:
                validation.warnings.append(f"Missing {meta.name} ({source})")
                validation.score -= MISSING_PENALTY
                continue
            is_valid, reason = catalog.validate_value(value, kpi_id, source)
            if not is_valid:
                validation.errors.append(f"{meta.name}: {reason}")
                validation.is_valid = False
                validation.score -= INVALID_PENALTY
            if source == "HF":
                alarm = catalog.check_alarm(value, kpi_id)
                if alarm:
                    validation.warnings.append(alarm)
                    validation.score -= ALARM_PENALTY
    validation.score = max(0, validation.score)
    return validation

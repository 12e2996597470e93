"""Quality-consistent synthetic time series.

Every (timestamp, vessel, KPI) cell is sampled from a smooth base signal and
then, if the vessel's issue profile lists a problem for that KPI, randomly
blanked (missing) or overridden with an out-of-range reading (incorrect).
Faults therefore only appear where the quality cards say they should.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from issue_profiles import Issue, IssueProfile
from kpi_catalog import DEFAULT_CATALOG, SOURCES, KPICatalog
from vessels import Vessel

logger = logging.getLogger(__name__)

MISSING_PROBABILITY = 0.3
INCORRECT_PROBABILITY = 0.2
HF_MULTIPLIER = 1.1

# Hours between samples per resolution
INTERVAL_HOURS = {
    "raw": 3,
    "1hr": 1,
    "6hr": 6,
    "12hr": 12,
    "daily": 24,
}

DATA_TYPES = ("LF", "HF", "combined")

# Substitute readings when an incorrect issue carries no original value
_FALLBACK_VALUES = {
    "obs_speed": -2.5,
    "me_consumption": 55.0,
    "rpm": 250.0,
}
_FALLBACK_FACTOR = 1.5


class QualityType(str, Enum):
    NORMAL = "normal"
    MISSING = "missing"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class QualityDataPoint:
    value: float | None
    quality_type: QualityType = QualityType.NORMAL
    issue_details: Issue | None = None

    @property
    def has_issue(self) -> bool:
        return self.quality_type is not QualityType.NORMAL


@dataclass
class TimeSeriesRow:
    timestamp: pd.Timestamp
    data_type: str = "LF"
    points: dict[str, QualityDataPoint] = field(default_factory=dict)

    def point(self, vessel_id: str, kpi_id: str, source: str | None = None) -> QualityDataPoint | None:
        if self.data_type == "combined":
            if source is None:
                return None
            return self.points.get(column_key(vessel_id, kpi_id, source))
        if source is not None and source != self.data_type:
            return None
        return self.points.get(column_key(vessel_id, kpi_id))


def column_key(vessel_id: str, kpi_id: str, source: str | None = None) -> str:
    key = f"{vessel_id}_{kpi_id}"
    if source:
        key = f"{key}_{source}"
    return key


def normalize_data_type(data_type: str) -> str:
    if not isinstance(data_type, str):
        raise ValueError(f"data_type must be one of {DATA_TYPES}, got {data_type!r}")
    lowered = data_type.strip().lower()
    if lowered == "combined":
        return "combined"
    if lowered in ("lf", "hf"):
        return lowered.upper()
    raise ValueError(f"data_type must be one of {DATA_TYPES}, got '{data_type}'")


def build_timestamps(start, end, interval: str = "daily") -> list[pd.Timestamp]:
    """Inclusive timestamps from start to end stepping by the named interval."""
    hours = INTERVAL_HOURS.get(interval)
    if hours is None:
        raise ValueError(f"interval must be one of {sorted(INTERVAL_HOURS)}, got '{interval}'")
    start_ts = pd.Timestamp(start)
    end_ts = pd.Timestamp(end)
    if end_ts < start_ts:
        return []
    return list(pd.date_range(start=start_ts, end=end_ts, freq=f"{hours}h"))


def _hours_since_epoch(ts) -> float:
    return pd.Timestamp(ts).timestamp() / 3600.0


def _raw_signal(kpi_id: str, t: float, rng: np.random.Generator) -> float:
    noise = rng.random()
    if kpi_id == "obs_speed":
        return 10 + noise * 5 + math.sin(t / 24) * 2
    if kpi_id == "me_consumption":
        return 20 + noise * 10 + math.sin(t / 12) * 3
    if kpi_id == "total_consumption":
        return 25 + noise * 15 + math.sin(t / 8) * 4
    if kpi_id == "wind_force":
        return math.floor(noise * 8) + math.sin(t / 6) * 2
    if kpi_id == "me_power":
        return 5000 + noise * 2000 + math.sin(t / 4) * 500
    if kpi_id == "me_sfoc":
        return 160 + noise * 10 + math.sin(t / 24) * 3
    if kpi_id == "rpm":
        return 80 + noise * 20 + math.sin(t / 6) * 5
    return noise * 100


def base_value(
    kpi_id: str,
    ts,
    source: str,
    rng: np.random.Generator,
    catalog: KPICatalog = DEFAULT_CATALOG,
) -> float:
    """Normal reading for kpi_id at ts, clamped to the KPI's nominal range."""
    value = _raw_signal(kpi_id, _hours_since_epoch(ts), rng)
    if source == "HF":
        value *= HF_MULTIPLIER
    meta = catalog.lookup(kpi_id, source)
    if meta is not None:
        value = meta.clamp(value)
    return value


def _incorrect_value(issue: Issue, kpi_id: str, value: float) -> float:
    if issue.original_value is not None:
        return issue.original_value
    if kpi_id in _FALLBACK_VALUES:
        return _FALLBACK_VALUES[kpi_id]
    return value * _FALLBACK_FACTOR


def _finalize(value: float | None) -> float | None:
    if value is None:
        return None
    return round(max(0.0, float(value)), 2)


def sample_point(
    kpi_id: str,
    ts,
    source: str,
    profile: IssueProfile | None,
    rng: np.random.Generator,
    catalog: KPICatalog = DEFAULT_CATALOG,
) -> QualityDataPoint:
    missing_issue = profile.issue_for(kpi_id, "completeness") if profile else None
    if missing_issue is not None and rng.random() < MISSING_PROBABILITY:
        return QualityDataPoint(value=None, quality_type=QualityType.MISSING, issue_details=missing_issue)

    value = base_value(kpi_id, ts, source, rng, catalog)

    incorrect_issue = profile.issue_for(kpi_id, "correctness") if profile else None
    if incorrect_issue is not None and rng.random() < INCORRECT_PROBABILITY:
        return QualityDataPoint(
            value=_finalize(_incorrect_value(incorrect_issue, kpi_id, value)),
            quality_type=QualityType.INCORRECT,
            issue_details=incorrect_issue,
        )

    return QualityDataPoint(value=_finalize(value))


def inject_faults(
    timestamps: Iterable,
    vessels: Sequence[Vessel],
    kpis: Sequence[str],
    profiles: Mapping[str, IssueProfile],
    rng: np.random.Generator,
    catalog: KPICatalog = DEFAULT_CATALOG,
    data_type: str = "LF",
) -> list[TimeSeriesRow]:
    """Generate one row per timestamp with a point per vessel x KPI column."""
    mode = normalize_data_type(data_type)
    sources = SOURCES if mode == "combined" else (mode,)

    columns: list[tuple[str, str]] = []
    for kpi_id in kpis:
        for source in sources:
            if catalog.lookup(kpi_id, source) is None:
                logger.warning("Skipping unknown KPI id: %s (%s)", kpi_id, source)
                continue
            columns.append((kpi_id, source))

    rows: list[TimeSeriesRow] = []
    for ts in timestamps:
        row = TimeSeriesRow(timestamp=pd.Timestamp(ts), data_type=mode)
        for vessel in vessels:
            profile = profiles.get(vessel.id)
            for kpi_id, source in columns:
                key = column_key(vessel.id, kpi_id, source if mode == "combined" else None)
                row.points[key] = sample_point(kpi_id, ts, source, profile, rng, catalog)
        rows.append(row)

    logger.debug(
        "Injected %d rows x %d columns (%s)", len(rows), len(columns) * len(vessels), mode
    )
    return rows


def to_frame(rows: Sequence[TimeSeriesRow]) -> pd.DataFrame:
    """Values as a DataFrame indexed by timestamp; missing points become NaN."""
    if not rows:
        return pd.DataFrame()
    index = pd.DatetimeIndex([row.timestamp for row in rows], name="timestamp")
    records = [{key: point.value for key, point in row.points.items()} for row in rows]
    return pd.DataFrame.from_records(records, index=index).astype(float)


def quality_frame(rows: Sequence[TimeSeriesRow]) -> pd.DataFrame:
    """Quality type labels per cell, same shape as to_frame()."""
    if not rows:
        return pd.DataFrame()
    index = pd.DatetimeIndex([row.timestamp for row in rows], name="timestamp")
    records = [{key: point.quality_type.value for key, point in row.points.items()} for row in rows]
    return pd.DataFrame.from_records(records, index=index)

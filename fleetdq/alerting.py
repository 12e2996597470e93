"""Threshold alerts for fleet data quality.

generate_alerts() is a stateless scan over the current metrics; AlertStore
holds what the operator has not dismissed yet, deduplicated by alert id and
capped to the most recent ALERT_CAPACITY entries.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Literal, Sequence

import pandas as pd

from fleet_metrics import FleetMetrics
from record_quality import QualityMetrics, RecordQuality
from settings import (
    ALERT_CAPACITY,
    CRITICAL_COMPLETENESS,
    RECENT_MISSING_COMPLETENESS,
    RECENT_MISSING_DAYS,
    QualitySettings,
)

logger = logging.getLogger(__name__)

Severity = Literal["warning", "critical"]

ALERT_QUALITY_DEGRADATION = "quality_degradation"
ALERT_MISSING_DATA = "missing_data"


@dataclass(frozen=True)
class Alert:
    id: str
    type: str
    severity: Severity
    title: str
    message: str
    timestamp: datetime
    affected_vessels: tuple[str, ...] = field(default_factory=tuple)
    action_required: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["affected_vessels"] = list(self.affected_vessels)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def _severity(completeness: float) -> Severity:
    return "critical" if completeness < CRITICAL_COMPLETENESS else "warning"


def _as_utc(ts) -> pd.Timestamp:
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def recent_missing_records(
    records: Iterable[RecordQuality], now: datetime, days: int = RECENT_MISSING_DAYS
) -> list[RecordQuality]:
    """Records in the trailing window with any data frequency below the missing-data cutoff."""
    cutoff = _as_utc(now) - timedelta(days=days)
    return [
        record
        for record in records
        if _as_utc(record.timestamp) >= cutoff
        and any(sq.completeness < RECENT_MISSING_COMPLETENESS for sq in record.assessed_sources())
    ]


def _completeness_view(metrics: QualityMetrics | FleetMetrics):
    """(assessed, overall completeness, [(vessel id, name, completeness)]) for either metrics shape."""
    if isinstance(metrics, FleetMetrics):
        vessels = [(v.vessel_id, v.name, v.completeness) for v in metrics.vessels]
        return metrics.total_vessels > 0, float(metrics.avg_completeness), vessels
    vessels = [(vessel_id, v.name, v.completeness) for vessel_id, v in metrics.by_vessel.items()]
    return metrics.assessed, metrics.overall.completeness, vessels


def generate_alerts(
    metrics: QualityMetrics | FleetMetrics,
    settings: QualitySettings,
    records: Sequence[RecordQuality] = (),
    now: datetime | None = None,
) -> list[Alert]:
    """Scan metrics (and optionally raw records) for threshold breaches.

    Accepts record-level QualityMetrics or the fleet rollup; for a rollup the
    rounded average completeness stands in for overall completeness.
    """
    assessed, overall, vessels = _completeness_view(metrics)
    if not settings.enable_real_time_checks or not assessed:
        return []

    now = now or datetime.now(timezone.utc)
    ms = int(now.timestamp() * 1000)
    threshold = settings.alert_threshold
    alerts: list[Alert] = []

    if overall < threshold:
        alerts.append(
            Alert(
                id=f"quality_{ms}_1",
                type=ALERT_QUALITY_DEGRADATION,
                severity=_severity(overall),
                title="Data Completeness Below Threshold",
                message=f"Overall data completeness is {overall:.1f}%",
                timestamp=now,
                affected_vessels=tuple(vessel_id for vessel_id, _, _ in vessels),
                action_required=True,
            )
        )

    for vessel_id, name, completeness in vessels:
        if completeness < threshold:
            alerts.append(
                Alert(
                    id=f"vessel_quality_{vessel_id}_{ms}",
                    type=ALERT_QUALITY_DEGRADATION,
                    severity=_severity(completeness),
                    title=f"{name} Quality Issue",
                    message=f"Data completeness: {completeness:.1f}%",
                    timestamp=now,
                    affected_vessels=(vessel_id,),
                    action_required=True,
                )
            )

    if records:
        flagged = recent_missing_records(records, now)
        if flagged:
            affected = list(dict.fromkeys(record.vessel_id for record in flagged))
            alerts.append(
                Alert(
                    id=f"missing_data_{ms}",
                    type=ALERT_MISSING_DATA,
                    severity="warning",
                    title="Recent Missing Data Detected",
                    message=f"{len(flagged)} records with significant missing data in last {RECENT_MISSING_DAYS} days",
                    timestamp=now,
                    affected_vessels=tuple(affected),
                    action_required=False,
                )
            )

    if alerts:
        logger.warning("Generated %d data quality alert(s)", len(alerts))
    return alerts


class AlertStore:
    """Undismissed alerts, newest last."""

    def __init__(self, capacity: int = ALERT_CAPACITY):
        self._alerts: deque[Alert] = deque(maxlen=capacity)

    def merge(self, new_alerts: Iterable[Alert]) -> list[Alert]:
        """Append alerts whose id is not already stored; returns the ones added."""
        known = {alert.id for alert in self._alerts}
        added = []
        for alert in new_alerts:
            if alert.id in known:
                continue
            known.add(alert.id)
            self._alerts.append(alert)
            added.append(alert)
        return added

    def dismiss(self, alert_id: str) -> bool:
        for alert in self._alerts:
            if alert.id == alert_id:
                self._alerts.remove(alert)
                return True
        logger.debug("Dismiss ignored, no alert with id %s", alert_id)
        return False

    def clear(self) -> None:
        self._alerts.clear()

    @property
    def alerts(self) -> list[Alert]:
        return list(self._alerts)

    @property
    def critical(self) -> list[Alert]:
        return [alert for alert in self._alerts if alert.severity == "critical"]

    def __len__(self) -> int:
        return len(self._alerts)

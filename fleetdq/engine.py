"""Quality engine facade.

Owns the session state: the seeded RNG, the cached issue profiles for the
canonical fleet, the rolling history and the alert store. Everything else is
delegated to the pure functions in the component modules.
"""

import logging
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Sequence

import numpy as np

import alerting
import fault_injection
import fleet_metrics
import issue_profiles
import record_quality
import scoring
import trends
from kpi_catalog import DEFAULT_CATALOG, KPICatalog
from settings import QualitySettings, load_seed, load_settings
from vessels import FLEET, Vessel

logger = logging.getLogger(__name__)


@dataclass
class QualitySnapshot:
    """Everything one refresh cycle produced."""

    timestamp: datetime
    fleet: fleet_metrics.FleetMetrics
    profiles: dict[str, issue_profiles.IssueProfile]
    rows: list[fault_injection.TimeSeriesRow] = field(default_factory=list)
    records: list[record_quality.RecordQuality] = field(default_factory=list)
    metrics: record_quality.QualityMetrics = field(default_factory=record_quality.QualityMetrics)
    assessment: record_quality.QualityAssessment | None = None
    coverage: fleet_metrics.CoverageEstimate = field(default_factory=fleet_metrics.CoverageEstimate)
    history: list[trends.HistoryEntry] = field(default_factory=list)
    trend: trends.TrendReport = field(default_factory=trends.TrendReport)
    new_alerts: list[alerting.Alert] = field(default_factory=list)
    alerts: list[alerting.Alert] = field(default_factory=list)


class QualityEngine:
    def __init__(
        self,
        catalog: KPICatalog = DEFAULT_CATALOG,
        vessels: Sequence[Vessel] = FLEET,
        settings: QualitySettings | None = None,
        seed: int | None = None,
    ):
        self.catalog = catalog
        self.vessels = tuple(vessels)
        self.settings = settings or load_settings()
        self.seed = load_seed() if seed is None else seed
        # Fault draws only; profile jitter comes from per-vessel child generators.
        self.rng = np.random.default_rng(self.seed)
        self.history = trends.QualityHistory()
        self.alert_store = alerting.AlertStore()
        self._extra_profiles: dict[int, issue_profiles.IssueProfile] = {}
        self._profiles = issue_profiles.build_fleet_profiles(self.vessels, rng_for=self._profile_rng)

    def _profile_rng(self, key: int) -> np.random.Generator:
        return np.random.default_rng([self.seed, key])

    @property
    def profiles(self) -> dict[str, issue_profiles.IssueProfile]:
        """Canonical fleet profiles, built once when the engine is created."""
        return self._profiles

    def get_issue_profile(self, vessel_index: int) -> issue_profiles.IssueProfile:
        if vessel_index < 0:
            raise ValueError(f"vessel index must be >= 0, got {vessel_index}")
        if vessel_index < len(self.vessels):
            return self._profiles[self.vessels[vessel_index].id]
        profile = self._extra_profiles.get(vessel_index)
        if profile is None:
            profile = issue_profiles.get_issue_profile(vessel_index, self._profile_rng(vessel_index))
            self._extra_profiles[vessel_index] = profile
        return profile

    def score_vessel(self, profile) -> scoring.VesselScore:
        """Scores for a profile; stable for the life of the engine.

        Profiles this engine built return their stored scores. Anything else is
        scored from a generator keyed on the vessel id, so repeat calls agree.
        """
        known = self._profiles.get(profile.vessel_id)
        if known is None:
            known = next(
                (p for p in self._extra_profiles.values() if p.vessel_id == profile.vessel_id), None
            )
        if known is not None and known == profile:
            return scoring.VesselScore(profile.completeness, profile.correctness, profile.overall_score)
        key = zlib.crc32(profile.vessel_id.encode("utf-8"))
        return scoring.score_vessel(profile, self._profile_rng(key))

    def resolve_vessels(self, vessel_ids: Iterable[str] | None) -> list[Vessel]:
        if vessel_ids is None:
            return list(self.vessels)
        by_id = {vessel.id: vessel for vessel in self.vessels}
        resolved = []
        for vessel_id in vessel_ids:
            vessel = by_id.get(vessel_id)
            if vessel is None:
                logger.warning("Skipping unknown vessel id: %s", vessel_id)
                continue
            resolved.append(vessel)
        return resolved

    def inject_faults(
        self,
        timestamps: Iterable,
        vessels: Sequence[Vessel],
        kpis: Sequence[str],
        profiles: dict[str, issue_profiles.IssueProfile] | None = None,
        data_type: str = "LF",
    ) -> list[fault_injection.TimeSeriesRow]:
        return fault_injection.inject_faults(
            timestamps,
            vessels,
            kpis,
            self.profiles if profiles is None else profiles,
            self.rng,
            self.catalog,
            data_type,
        )

    def aggregate_fleet(self, profiles: Iterable | None = None) -> fleet_metrics.FleetMetrics:
        if profiles is None:
            profiles = self.profiles.values()
        return fleet_metrics.aggregate_fleet(profiles)

    def record_history(
        self, metrics: fleet_metrics.FleetMetrics, timestamp: datetime | None = None
    ) -> list[trends.HistoryEntry]:
        return self.history.record(metrics, timestamp)

    def compute_trends(self, history: Sequence[trends.HistoryEntry] | None = None) -> trends.TrendReport:
        return trends.compute_trends(self.history.entries if history is None else history)

    def generate_alerts(
        self,
        metrics: record_quality.QualityMetrics | fleet_metrics.FleetMetrics,
        settings: QualitySettings | None = None,
        records: Sequence[record_quality.RecordQuality] = (),
        now: datetime | None = None,
    ) -> list[alerting.Alert]:
        """Scan for alerts and merge the new ones into the store."""
        generated = alerting.generate_alerts(metrics, settings or self.settings, records, now)
        return self.alert_store.merge(generated)

    @property
    def alerts(self) -> list[alerting.Alert]:
        return self.alert_store.alerts

    def dismiss_alert(self, alert_id: str) -> bool:
        return self.alert_store.dismiss(alert_id)

    def clear_all_alerts(self) -> None:
        self.alert_store.clear()

    def update_settings(self, **changes) -> QualitySettings:
        self.settings = self.settings.with_updates(**changes)
        logger.info("Updated quality settings: %s", ", ".join(sorted(changes)))
        return self.settings

    def refresh(
        self,
        timestamps: Iterable = (),
        vessel_ids: Iterable[str] | None = None,
        kpi_ids: Iterable[str] = (),
        data_type: str = "LF",
        now: datetime | None = None,
    ) -> QualitySnapshot:
        """Run one full cycle: inject, assess, aggregate, track and alert.

        History tracks the canonical fleet rollup, which is fixed for the life
        of the engine, so the reported trend stays ``stable`` unless profiles
        change. Nothing is recorded while ``settings.auto_refresh`` is off.
        """
        now = now or datetime.now(timezone.utc)
        timestamps = list(timestamps)
        vessels = self.resolve_vessels(vessel_ids)
        kpis = self.catalog.known(kpi_ids)

        fleet = self.aggregate_fleet()
        rows = self.inject_faults(timestamps, vessels, kpis, data_type=data_type)
        records = record_quality.record_quality(rows, vessels, kpis, self.catalog)
        if records:
            metrics = record_quality.assess_records(records, now)
        else:
            metrics = record_quality.metrics_from_profiles(self.profiles, now)
        assessment = record_quality.perform_assessment(records, metrics, now)

        if self.settings.auto_refresh:
            history = self.record_history(fleet, now)
        else:
            history = self.history.entries
        new_alerts = self.generate_alerts(metrics, records=records, now=now)

        snapshot = QualitySnapshot(
            timestamp=now,
            fleet=fleet,
            profiles=self.profiles,
            rows=rows,
            records=records,
            metrics=metrics,
            assessment=assessment,
            coverage=fleet_metrics.coverage_estimate(fleet, len(timestamps), len(vessels), len(kpis)),
            history=history,
            trend=self.compute_trends(),
            new_alerts=new_alerts,
            alerts=self.alerts,
        )
        logger.info(
            "Refresh: health %d, %d/%d/%d healthy/average/poor, %d new alert(s)",
            fleet.overall_health,
            fleet.healthy_vessels,
            fleet.average_vessels,
            fleet.poor_vessels,
            len(new_alerts),
        )
        return snapshot

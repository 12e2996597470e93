"""Tests for threshold alerts and the alert store."""

from datetime import datetime, timedelta, timezone

import pandas as pd

import alerting
from fleet_metrics import FleetMetrics, aggregate_fleet
from issue_profiles import IssueProfile
from record_quality import QualityMetrics, RecordQuality, SourceQuality, metrics_from_profiles
from settings import QualitySettings

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
MS = int(NOW.timestamp() * 1000)


def _profile(index, completeness, correctness=99.0):
    return IssueProfile(
        vessel_id=f"vessel_{index}",
        vessel_name=f"Vessel {index}",
        missing_count=0,
        incorrect_count=0,
        issues=(),
        completeness=completeness,
        correctness=correctness,
        overall_score=int((completeness + correctness) / 2),
    )


def _metrics(*completeness):
    profiles = {f"vessel_{i}": _profile(i, c) for i, c in enumerate(completeness, start=1)}
    return metrics_from_profiles(profiles, NOW)


def _record(vessel_id, days_ago, lf_present, hf_present=4):
    return RecordQuality(
        timestamp=pd.Timestamp(NOW - timedelta(days=days_ago)),
        vessel_id=vessel_id,
        vessel_name=vessel_id,
        lf=SourceQuality(expected=4, present=lf_present, valid=lf_present),
        hf=SourceQuality(expected=4, present=hf_present, valid=hf_present),
    )


class TestGenerateAlerts:
    def test_all_vessels_above_threshold_no_alerts(self):
        metrics = _metrics(*([96.0] * 10))
        assert alerting.generate_alerts(metrics, QualitySettings(), now=NOW) == []

    def test_fleet_warning_between_70_and_threshold(self):
        metrics = _metrics(80.0, 80.0)
        alerts = alerting.generate_alerts(metrics, QualitySettings(), now=NOW)
        fleet = alerts[0]
        assert fleet.id == f"quality_{MS}_1"
        assert fleet.type == "quality_degradation"
        assert fleet.severity == "warning"
        assert fleet.title == "Data Completeness Below Threshold"
        assert fleet.message == "Overall data completeness is 80.0%"
        assert fleet.affected_vessels == ("vessel_1", "vessel_2")
        assert fleet.action_required is True

    def test_critical_below_70(self):
        alerts = alerting.generate_alerts(_metrics(65.0), QualitySettings(), now=NOW)
        assert {a.severity for a in alerts} == {"critical"}

    def test_vessel_alerts_only_for_vessels_below_threshold(self):
        metrics = _metrics(96.0, 96.0, 96.0, 60.0)
        alerts = alerting.generate_alerts(metrics, QualitySettings(), now=NOW)
        assert [a.id for a in alerts] == [f"vessel_quality_vessel_4_{MS}"]
        assert alerts[0].title == "Vessel 4 Quality Issue"
        assert alerts[0].message == "Data completeness: 60.0%"
        assert alerts[0].severity == "critical"
        assert alerts[0].affected_vessels == ("vessel_4",)

    def test_threshold_is_configurable(self):
        metrics = _metrics(80.0)
        assert alerting.generate_alerts(metrics, QualitySettings(alert_threshold=75), now=NOW) == []

    def test_disabled_realtime_checks(self):
        settings = QualitySettings(enable_real_time_checks=False)
        assert alerting.generate_alerts(_metrics(10.0), settings, now=NOW) == []

    def test_nothing_assessed(self):
        assert alerting.generate_alerts(QualityMetrics(), QualitySettings(), now=NOW) == []

    def test_ids_unique_within_call(self):
        alerts = alerting.generate_alerts(_metrics(50.0, 60.0, 65.0), QualitySettings(), now=NOW)
        ids = [a.id for a in alerts]
        assert len(ids) == len(set(ids)) == 4


class TestAlertsFromFleetRollup:
    def test_healthy_fleet_rollup_raises_nothing(self):
        profiles = [_profile(i, 96.0) for i in range(1, 11)]
        assert alerting.generate_alerts(aggregate_fleet(profiles), QualitySettings(), now=NOW) == []

    def test_rollup_uses_average_and_per_vessel_completeness(self):
        profiles = [_profile(1, 96.0), _profile(2, 96.0), _profile(3, 60.0)]
        alerts = alerting.generate_alerts(aggregate_fleet(profiles), QualitySettings(), now=NOW)
        assert [a.id for a in alerts] == [f"quality_{MS}_1", f"vessel_quality_vessel_3_{MS}"]
        assert alerts[0].message == "Overall data completeness is 84.0%"
        assert alerts[0].severity == "warning"
        assert alerts[0].affected_vessels == ("vessel_1", "vessel_2", "vessel_3")
        assert alerts[1].title == "Vessel 3 Quality Issue"
        assert alerts[1].severity == "critical"

    def test_empty_rollup(self):
        assert alerting.generate_alerts(FleetMetrics(), QualitySettings(), now=NOW) == []


class TestRecentMissingData:
    def test_missing_data_alert_for_recent_records(self):
        records = [
            _record("vessel_1", 1, lf_present=1),
            _record("vessel_2", 2, lf_present=4, hf_present=0),
            _record("vessel_1", 2, lf_present=1),
            _record("vessel_3", 5, lf_present=0),
            _record("vessel_4", 1, lf_present=4),
        ]
        alerts = alerting.generate_alerts(_metrics(96.0), QualitySettings(), records, now=NOW)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.id == f"missing_data_{MS}"
        assert alert.type == "missing_data"
        assert alert.severity == "warning"
        assert alert.title == "Recent Missing Data Detected"
        assert alert.message == "3 records with significant missing data in last 3 days"
        assert alert.affected_vessels == ("vessel_1", "vessel_2")
        assert alert.action_required is False

    def test_cutoff_independent_of_alert_threshold(self):
        # 75% complete is below a 99 threshold but not below the 50% missing-data cutoff
        records = [_record("vessel_1", 1, lf_present=3)]
        alerts = alerting.generate_alerts(
            _metrics(99.5), QualitySettings(alert_threshold=99), records, now=NOW
        )
        assert alerts == []

    def test_unrequested_frequency_never_counts_as_missing(self):
        record = RecordQuality(
            timestamp=pd.Timestamp(NOW - timedelta(days=1)),
            vessel_id="vessel_1",
            vessel_name="vessel_1",
            lf=SourceQuality(expected=4, present=4, valid=4),
            hf=SourceQuality(),
        )
        assert alerting.recent_missing_records([record], NOW) == []

    def test_naive_record_timestamps_treated_as_utc(self):
        record = _record("vessel_1", 1, lf_present=0)
        naive = RecordQuality(
            timestamp=record.timestamp.tz_localize(None),
            vessel_id=record.vessel_id,
            vessel_name=record.vessel_name,
            lf=record.lf,
            hf=record.hf,
        )
        assert alerting.recent_missing_records([naive], NOW) == [naive]


class TestAlertStore:
    def _alerts(self, now=NOW):
        return alerting.generate_alerts(_metrics(50.0, 96.0), QualitySettings(), now=now)

    def test_merge_keeps_only_new_ids(self):
        store = alerting.AlertStore()
        first = store.merge(self._alerts())
        again = store.merge(self._alerts())
        assert len(first) == 2
        assert again == []
        assert len(store) == 2

    def test_dismiss_removes_one(self):
        store = alerting.AlertStore()
        store.merge(self._alerts())
        target = store.alerts[0].id
        assert store.dismiss(target) is True
        assert target not in [a.id for a in store.alerts]
        assert len(store) == 1

    def test_dismiss_unknown_id(self):
        store = alerting.AlertStore()
        assert store.dismiss("nope") is False

    def test_dismissed_id_not_resurrected_by_later_scan(self):
        store = alerting.AlertStore()
        store.merge(self._alerts())
        dismissed = store.alerts[0].id
        store.dismiss(dismissed)
        store.merge(self._alerts(NOW + timedelta(seconds=1)))
        assert dismissed not in [a.id for a in store.alerts]

    def test_truncates_to_latest_fifty(self):
        store = alerting.AlertStore()
        for i in range(30):
            store.merge(self._alerts(NOW + timedelta(seconds=i)))
        assert len(store) == 50
        last_ms = int((NOW + timedelta(seconds=29)).timestamp() * 1000)
        assert store.alerts[-1].id.endswith(str(last_ms))

    def test_clear(self):
        store = alerting.AlertStore()
        store.merge(self._alerts())
        store.clear()
        assert store.alerts == []

    def test_critical(self):
        store = alerting.AlertStore()
        store.merge(self._alerts())
        assert [a.id for a in store.critical] == [f"vessel_quality_vessel_1_{MS}"]

    def test_to_dict(self):
        data = self._alerts()[0].to_dict()
        assert data["timestamp"] == NOW.isoformat()
        assert isinstance(data["affected_vessels"], list)

"""Tests for deterministic issue profile generation."""

import numpy as np
import pytest

import issue_profiles
from vessels import FLEET


class TestIssuePattern:
    def test_first_vessel(self):
        assert issue_profiles.issue_pattern(0) == (2, 3)

    def test_cycles_past_table_length(self):
        assert issue_profiles.issue_pattern(10) == issue_profiles.issue_pattern(0)
        assert issue_profiles.issue_pattern(13) == (0, 4)

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError, match="vessel index"):
            issue_profiles.issue_pattern(-1)


class TestBuildIssues:
    def test_missing_issues_cycle_kpis(self):
        issues = issue_profiles.build_issues(3, 0)
        assert [i.kpi for i in issues] == ["wind_force", "me_power", "rpm"]
        assert all(i.type == "completeness" for i in issues)
        assert all(i.severity == "medium" for i in issues)
        assert all(i.message == "Sensor data unavailable" for i in issues)
        assert all(i.original_value is None for i in issues)

    def test_incorrect_issue_details_by_position(self):
        issues = issue_profiles.build_issues(0, 4)
        assert [i.severity for i in issues] == ["high", "medium", "low", "low"]
        assert [i.original_value for i in issues] == [-2.5, 45.8, 250.0, 250.0]
        assert issues[0].message == "Negative speed detected"
        assert issues[1].message == "Consumption spike detected"
        assert issues[3].message == "RPM-speed correlation warning"
        assert [i.kpi for i in issues] == ["wind_force", "me_power", "rpm", "me_consumption"]

    def test_kpi_cycle_wraps(self):
        issues = issue_profiles.build_issues(6, 0)
        assert issues[5].kpi == "wind_force"

    def test_missing_issues_come_first(self):
        issues = issue_profiles.build_issues(2, 3)
        assert [i.type for i in issues] == ["completeness"] * 2 + ["correctness"] * 3


class TestGetIssueProfile:
    @pytest.mark.parametrize("index", range(15))
    def test_issue_count_matches_pattern(self, index, rng):
        profile = issue_profiles.get_issue_profile(index, rng)
        assert len(profile.issues) == profile.missing_count + profile.incorrect_count
        assert profile.issue_count == len(profile.issues)

    def test_uses_fleet_vessel(self, rng):
        profile = issue_profiles.get_issue_profile(2, rng)
        assert profile.vessel_id == "vessel_3"
        assert profile.vessel_name == "Nordic Voyager"

    def test_vessel_beyond_fleet_gets_generated_name(self, rng):
        profile = issue_profiles.get_issue_profile(11, rng)
        assert profile.vessel_id == "vessel_12"
        assert (profile.missing_count, profile.incorrect_count) == (1, 1)

    def test_critical_issues_counts_high_severity(self, zero_jitter_rng):
        profile = issue_profiles.get_issue_profile(0, zero_jitter_rng)
        assert profile.critical_issues == 1
        assert profile.completeness == 75.0
        assert profile.correctness == 40.0
        assert profile.overall_score == 58
        assert profile.grade == "Poor"

    def test_same_seed_same_profile(self):
        first = issue_profiles.get_issue_profile(4, np.random.default_rng(3))
        second = issue_profiles.get_issue_profile(4, np.random.default_rng(3))
        assert first == second

    def test_issue_for_finds_first_matching_issue(self, rng):
        profile = issue_profiles.get_issue_profile(0, rng)
        assert profile.issue_for("wind_force", "correctness").severity == "high"
        assert profile.issue_for("me_power", "completeness").message == "Sensor data unavailable"
        assert profile.issue_for("obs_speed", "completeness") is None

    def test_to_dict_includes_derived_fields(self, rng):
        data = issue_profiles.get_issue_profile(1, rng).to_dict()
        assert data["issue_count"] == 2
        assert data["critical_issues"] == 1
        assert data["issues"][1]["original_value"] == -2.5


class TestBuildFleetProfiles:
    def test_keyed_by_vessel_in_fleet_order(self, rng):
        profiles = issue_profiles.build_fleet_profiles(FLEET, rng)
        assert list(profiles) == [v.id for v in FLEET]
        assert profiles["vessel_4"].missing_count == 0
        assert profiles["vessel_4"].incorrect_count == 4

    def test_empty_fleet(self, rng):
        assert issue_profiles.build_fleet_profiles([], rng) == {}

    def test_per_position_generators_ignore_fleet_slice(self):
        def rng_for(idx):
            return np.random.default_rng([42, idx])

        full = issue_profiles.build_fleet_profiles(FLEET, rng_for=rng_for)
        head = issue_profiles.build_fleet_profiles(FLEET[:3], rng_for=rng_for)
        assert head == {vessel_id: full[vessel_id] for vessel_id in head}

    def test_requires_a_generator(self):
        with pytest.raises(ValueError, match="rng"):
            issue_profiles.build_fleet_profiles(FLEET)

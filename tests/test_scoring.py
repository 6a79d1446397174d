"""
PraanaCare - Scoring Rule Tests

Tests for emergency detection, the health index, risk levels and the
risk assessment aggregator.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from praanacare.services.scoring import (
    EnvironmentReading,
    VitalsReading,
    analyze_vitals,
    assess_risk,
    assessment_confidence,
    employee_risk_level,
    health_index,
    is_emergency,
    patient_summary,
    patient_urgency,
    risk_level,
    vitals_trends,
)


def reading(heart_rate=80, systolic=120, diastolic=80, temperature=98.6, oxygen=98):
    return VitalsReading(
        heart_rate=heart_rate,
        systolic=systolic,
        diastolic=diastolic,
        temperature=temperature,
        oxygen_saturation=oxygen,
    )


def alert(severity, hours_ago=1):
    return SimpleNamespace(severity=severity, created_at=datetime.utcnow() - timedelta(hours=hours_ago))


class TestEmergencyDetection:
    """Test fixed-threshold emergency detection."""

    def test_heart_rate_only_breach(self):
        assert is_emergency(reading(heart_rate=121)) is True

    def test_normal_reading(self):
        assert is_emergency(reading(heart_rate=80)) is False

    @pytest.mark.parametrize("overrides", [
        {"heart_rate": 49},
        {"systolic": 181},
        {"diastolic": 111},
        {"systolic": 89},
        {"diastolic": 59},
        {"temperature": 103.1},
        {"temperature": 94.9},
        {"oxygen": 89},
    ])
    def test_each_threshold_triggers(self, overrides):
        """Any single breach is enough."""
        assert is_emergency(reading(**overrides)) is True

    def test_thresholds_are_strict(self):
        """Values exactly on a threshold are not emergencies."""
        assert is_emergency(reading(heart_rate=120, systolic=180, diastolic=110, temperature=103, oxygen=90)) is False
        assert is_emergency(reading(heart_rate=50, systolic=90, diastolic=60, temperature=95)) is False


class TestHealthIndex:
    """Test the averaged health index."""

    def test_all_penalties_floor_at_zero(self):
        assert health_index([reading(heart_rate=110, systolic=150, diastolic=95, temperature=101, oxygen=93)]) == 0

    def test_normal_reading_scores_100(self):
        assert health_index([reading(heart_rate=70, temperature=98)]) == 100

    def test_readings_weighted_equally(self):
        """One bad reading among normal ones gives a moderate score."""
        bad = reading(heart_rate=110, systolic=150, diastolic=95, temperature=101, oxygen=93)
        readings = [bad] + [reading()] * 3
        assert health_index(readings) == 75

    def test_alert_penalty(self):
        readings = [reading()]
        assert health_index(readings, [alert("low")] * 2) == 90
        assert health_index(readings, [alert("low")] * 2, alert_penalty=10) == 80

    def test_alert_penalty_floors_at_zero(self):
        assert health_index([reading()], [alert("low")] * 30) == 0

    def test_no_readings(self):
        assert health_index([], [alert("critical")]) == 100


class TestRiskLevel:
    """Test risk level breakpoints."""

    @pytest.mark.parametrize("score,level", [
        (81, "critical"),
        (80, "high"),
        (61, "high"),
        (60, "medium"),
        (41, "medium"),
        (40, "low"),
        (39, "low"),
        (0, "low"),
    ])
    def test_breakpoints(self, score, level):
        assert risk_level(score) == level


class TestRiskAssessment:
    """Test the risk assessment aggregator."""

    def test_empty_inputs(self):
        result = assess_risk(None, None, [], [])
        assert result.risk_score == 0
        assert result.risk_level == "low"
        assert result.risk_factors == []
        assert result.confidence == 50

    def test_vital_factors_and_recommendations(self):
        result = assess_risk(reading(heart_rate=110, oxygen=93), None, [], [])
        assert result.risk_score == 55
        assert result.risk_level == "medium"
        assert "Elevated heart rate" in result.risk_factors
        assert "Low oxygen saturation" in result.risk_factors
        assert "Immediate medical attention required" in result.recommendations

    def test_environment_factors(self):
        environment = EnvironmentReading(ambient_temperature=38, humidity=85, air_quality=200)
        result = assess_risk(None, environment, [], [])
        assert result.risk_score == 45
        assert "High ambient temperature" in result.risk_factors
        assert "Implement cooling measures" in result.recommendations
        assert "Improve ventilation" in result.recommendations

    def test_increasing_trend(self):
        """History is newest first."""
        history = [reading(heart_rate=95, temperature=99.5), reading(heart_rate=80, temperature=98.6)]
        result = assess_risk(None, None, history, [])
        assert "Increasing heart rate trend" in result.risk_factors
        assert "Increasing temperature trend" in result.risk_factors
        assert result.risk_score == 25

    def test_alert_penalties_and_cap(self):
        alerts = [alert("critical")] * 5
        result = assess_risk(None, None, [], alerts)
        assert result.risk_score == 100
        assert result.risk_level == "critical"
        assert result.confidence == 65

    def test_confidence(self):
        assert assessment_confidence(0, 0) == 50
        assert assessment_confidence(6, 0) == 60
        assert assessment_confidence(11, 0) == 70
        assert assessment_confidence(20, 3) == 85


class TestTrendsAndViews:
    """Test trend comparison and per-patient views."""

    def test_trends_need_two_readings(self):
        trends = vitals_trends([reading()])
        assert trends["heartRate"] == {"trend": "stable", "change": 0}

    def test_trend_direction(self):
        trends = vitals_trends([reading(heart_rate=90), reading(heart_rate=80)])
        assert trends["heartRate"] == {"trend": "increasing", "change": 10}
        assert trends["temperature"]["trend"] == "stable"

    def test_analyze_against_baseline(self):
        history = [reading(heart_rate=70)] * 5
        analysis = analyze_vitals(reading(heart_rate=95), history)
        assert "Heart rate significantly elevated from baseline" in analysis.concerns
        assert analysis.severity == "low"

    def test_patient_summary_without_vitals(self):
        summary = patient_summary(None, [])
        assert summary["riskScore"] == 0
        assert summary["summary"] == "No recent vitals data available"

    def test_patient_summary_recent_critical(self):
        summary = patient_summary(reading(), [alert("critical", hours_ago=2)])
        assert summary["riskScore"] == 40
        assert "Recent critical alerts" in summary["concerns"]

    def test_employee_risk_level(self):
        assert employee_risk_level(None, []) == "low"
        assert employee_risk_level(reading(temperature=101, oxygen=93), []) == "medium"
        assert employee_risk_level(reading(temperature=101, oxygen=93), [alert("high")]) == "high"

    def test_patient_urgency(self):
        assert patient_urgency(None, [alert("high")]) == "low"
        assert patient_urgency(True, []) == "high"
        assert patient_urgency(False, [alert("medium")]) == "medium"
        assert patient_urgency(False, []) == "low"

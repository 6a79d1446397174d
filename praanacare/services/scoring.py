"""
PraanaCare - Vitals Scoring Rules

Deterministic, side-effect free scoring of vitals readings:
  - emergency condition detection
  - 0-100 health index over a set of readings
  - risk assessment aggregation (vitals, environment, trend, alerts)
  - per-patient summaries used by the doctor and employer views

Alerts are duck-typed: anything with a ``severity`` attribute (and
``created_at`` where recency matters) is accepted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from praanacare.config import (
    EMERGENCY_THRESHOLDS,
    HEALTH_INDEX_PENALTIES,
    NORMAL_HEART_RATE,
    HIGH_SYSTOLIC,
    HIGH_DIASTOLIC,
    FEVER_TEMPERATURE,
    LOW_OXYGEN,
    DEFAULT_ALERT_PENALTY,
    ENVIRONMENT_PENALTIES,
    TREND_PENALTIES,
    ALERT_SEVERITY_PENALTIES,
    TREND_WINDOW,
    RISK_LEVEL_BREAKPOINTS,
)


@dataclass(frozen=True)
class VitalsReading:
    """The vital signs the scoring rules look at."""
    heart_rate: float
    systolic: float
    diastolic: float
    temperature: float
    oxygen_saturation: float


@dataclass(frozen=True)
class EnvironmentReading:
    ambient_temperature: Optional[float] = None
    humidity: Optional[float] = None
    air_quality: Optional[float] = None


@dataclass
class RiskAssessment:
    """Result of aggregating every risk source for one patient."""
    risk_score: int
    risk_level: str
    risk_factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    confidence: int = 50


@dataclass
class VitalsAnalysis:
    risk_score: int
    severity: str
    concerns: List[str]
    recommendations: List[str]
    insights: str


# ---------------------------------------------------------------------------
# Emergency detection
# ---------------------------------------------------------------------------

def is_emergency(reading: VitalsReading) -> bool:
    """
    True when any single vital crosses a critical threshold.
    """
    t = EMERGENCY_THRESHOLDS
    if reading.heart_rate > t["heart_rate_high"] or reading.heart_rate < t["heart_rate_low"]:
        return True
    if reading.systolic > t["systolic_high"] or reading.diastolic > t["diastolic_high"]:
        return True
    if reading.systolic < t["systolic_low"] or reading.diastolic < t["diastolic_low"]:
        return True
    if reading.temperature > t["temperature_high"] or reading.temperature < t["temperature_low"]:
        return True
    if reading.oxygen_saturation < t["oxygen_low"]:
        return True
    return False


# ---------------------------------------------------------------------------
# Health index
# ---------------------------------------------------------------------------

def _heart_rate_abnormal(reading: VitalsReading) -> bool:
    low, high = NORMAL_HEART_RATE
    return reading.heart_rate > high or reading.heart_rate < low


def _blood_pressure_high(reading: VitalsReading) -> bool:
    return reading.systolic > HIGH_SYSTOLIC or reading.diastolic > HIGH_DIASTOLIC


def reading_score(reading: VitalsReading) -> int:
    """Score a single reading: 100 minus fixed penalties, floored at 0."""
    score = 100
    if _heart_rate_abnormal(reading):
        score -= HEALTH_INDEX_PENALTIES["heart_rate"]
    if _blood_pressure_high(reading):
        score -= HEALTH_INDEX_PENALTIES["blood_pressure"]
    if reading.temperature > FEVER_TEMPERATURE:
        score -= HEALTH_INDEX_PENALTIES["temperature"]
    if reading.oxygen_saturation < LOW_OXYGEN:
        score -= HEALTH_INDEX_PENALTIES["oxygen"]
    return max(score, 0)


def health_index(
    readings: Sequence[VitalsReading],
    alerts: Sequence = (),
    alert_penalty: int = DEFAULT_ALERT_PENALTY
) -> float:
    """
    Average per-reading score minus a flat penalty per alert, floored at 0.

    Readings are weighted equally; an empty set of readings scores 100
    and is not penalised for alerts.

    Args:
        readings: Vitals readings in any order
        alerts: Alerts in the same scope (only the count matters)
        alert_penalty: Points subtracted per alert (5 or 10 depending on the view)

    Returns:
        float: Health index in [0, 100]
    """
    if not readings:
        return 100

    average = sum(reading_score(r) for r in readings) / len(readings)
    return max(average - len(alerts) * alert_penalty, 0)


def risk_level(score: float) -> str:
    """Map a 0-100 risk score to low / medium / high / critical."""
    for breakpoint, level in RISK_LEVEL_BREAKPOINTS:
        if score > breakpoint:
            return level
    return "low"


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

def _direction(latest: float, previous: float) -> str:
    if latest > previous:
        return "increasing"
    if latest < previous:
        return "decreasing"
    return "stable"


def vitals_trends(readings: Sequence[VitalsReading]) -> Dict[str, dict]:
    """
    Compare the two newest readings (``readings`` is newest first).
    """
    metrics = {
        "heartRate": "heart_rate",
        "bloodPressure": "systolic",
        "temperature": "temperature",
        "oxygenSaturation": "oxygen_saturation",
    }
    if len(readings) < 2:
        return {name: {"trend": "stable", "change": 0} for name in metrics}

    latest, previous = readings[0], readings[1]
    trends = {}
    for name, attr in metrics.items():
        current, before = getattr(latest, attr), getattr(previous, attr)
        trends[name] = {"trend": _direction(current, before), "change": current - before}
    return trends


# ---------------------------------------------------------------------------
# Risk assessment
# ---------------------------------------------------------------------------

def assessment_confidence(history_size: int, alert_count: int) -> int:
    """Heuristic confidence in an assessment, from how much data backs it."""
    confidence = 50
    if history_size > 10:
        confidence += 20
    elif history_size > 5:
        confidence += 10
    if alert_count > 0:
        confidence += 15
    return min(confidence, 95)


def _vital_risk_factors(reading: VitalsReading) -> List[tuple]:
    factors = []
    if reading.heart_rate > NORMAL_HEART_RATE[1]:
        factors.append((HEALTH_INDEX_PENALTIES["heart_rate"], "Elevated heart rate"))
    if _blood_pressure_high(reading):
        factors.append((HEALTH_INDEX_PENALTIES["blood_pressure"], "High blood pressure"))
    if reading.temperature > FEVER_TEMPERATURE:
        factors.append((HEALTH_INDEX_PENALTIES["temperature"], "Elevated temperature"))
    if reading.oxygen_saturation < LOW_OXYGEN:
        factors.append((HEALTH_INDEX_PENALTIES["oxygen"], "Low oxygen saturation"))
    return factors


VITAL_RECOMMENDATIONS = {
    "Elevated heart rate": "Monitor for stress and dehydration",
    "High blood pressure": "Consider medication review",
    "Elevated temperature": "Monitor for infection or heat stress",
    "Low oxygen saturation": "Immediate medical attention required",
}


def assess_risk(
    current: Optional[VitalsReading],
    environment: Optional[EnvironmentReading],
    history: Sequence[VitalsReading],
    alerts: Sequence
) -> RiskAssessment:
    """
    Aggregate independent weighted penalties into one risk assessment.

    Args:
        current: Reading under assessment, if any
        environment: Workplace readings, if any
        history: Historical readings, newest first
        alerts: Recent alerts for the patient

    Returns:
        RiskAssessment: score capped at 100, level, factors, recommendations, confidence
    """
    score = 0
    factors: List[str] = []
    recommendations: List[str] = []

    if current is not None:
        for points, label in _vital_risk_factors(current):
            score += points
            factors.append(label)

    if environment is not None:
        threshold, points = ENVIRONMENT_PENALTIES["ambient_temperature"]
        if environment.ambient_temperature is not None and environment.ambient_temperature > threshold:
            score += points
            factors.append("High ambient temperature")
            recommendations.append("Implement cooling measures")

        threshold, points = ENVIRONMENT_PENALTIES["humidity"]
        if environment.humidity is not None and environment.humidity > threshold:
            score += points
            factors.append("High humidity")

        threshold, points = ENVIRONMENT_PENALTIES["air_quality"]
        if environment.air_quality is not None and environment.air_quality > threshold:
            score += points
            factors.append("Poor air quality")
            recommendations.append("Improve ventilation")

    if history:
        trend = vitals_trends(list(history)[:TREND_WINDOW])
        if trend["heartRate"]["trend"] == "increasing":
            score += TREND_PENALTIES["heart_rate"]
            factors.append("Increasing heart rate trend")
        if trend["temperature"]["trend"] == "increasing":
            score += TREND_PENALTIES["temperature"]
            factors.append("Increasing temperature trend")

    for alert in alerts:
        score += ALERT_SEVERITY_PENALTIES.get(alert.severity, 0)

    for label, recommendation in VITAL_RECOMMENDATIONS.items():
        if label in factors:
            recommendations.append(recommendation)

    score = min(score, 100)
    return RiskAssessment(
        risk_score=score,
        risk_level=risk_level(score),
        risk_factors=factors,
        recommendations=recommendations,
        confidence=assessment_confidence(len(history), len(alerts)),
    )


# ---------------------------------------------------------------------------
# Per-patient views
# ---------------------------------------------------------------------------

_INSIGHTS = {
    "critical": "Critical health indicators detected. Immediate medical intervention required. "
                "Patient shows signs of severe distress.",
    "high": "High-risk health indicators. Patient requires close monitoring and potential "
            "medical consultation.",
    "medium": "Moderate health concerns detected. Patient should be monitored and provided "
              "with appropriate interventions.",
    "low": "Health indicators are within acceptable ranges. Continue regular monitoring and "
           "maintain current health practices.",
}

_ANALYSIS_RECOMMENDATIONS = {
    "Elevated heart rate": "Monitor for stress or dehydration",
    "High blood pressure": "Consider medication review",
    "Elevated temperature": "Monitor for infection or heat stress",
    "Low oxygen saturation": "Immediate medical attention required",
}


def analyze_vitals(current: VitalsReading, history: Sequence[VitalsReading]) -> VitalsAnalysis:
    """Compare a reading against fixed limits and the patient's own baseline."""
    score = 0
    concerns = []
    recommendations = []
    for points, label in _vital_risk_factors(current):
        score += points
        concerns.append(label)
        recommendations.append(_ANALYSIS_RECOMMENDATIONS[label])

    if history:
        avg_heart_rate = sum(r.heart_rate for r in history) / len(history)
        avg_systolic = sum(r.systolic for r in history) / len(history)
        if current.heart_rate > avg_heart_rate + 20:
            score += 15
            concerns.append("Heart rate significantly elevated from baseline")
        if current.systolic > avg_systolic + 20:
            score += 15
            concerns.append("Blood pressure significantly elevated from baseline")

    score = min(score, 100)
    level = risk_level(score)
    return VitalsAnalysis(
        risk_score=score,
        severity=level,
        concerns=concerns,
        recommendations=recommendations,
        insights=_INSIGHTS[level],
    )


def patient_summary(latest: Optional[VitalsReading], alerts: Sequence, now: datetime = None) -> dict:
    """Short risk summary for the doctor's patient detail view."""
    if latest is None:
        return {
            "riskScore": 0,
            "summary": "No recent vitals data available",
            "recommendations": ["Schedule regular health monitoring"],
            "concerns": [],
        }

    now = now or datetime.utcnow()
    score = 0
    concerns = []
    recommendations = []
    for points, label in _vital_risk_factors(latest):
        score += points
        concerns.append(label)
        recommendations.append(_ANALYSIS_RECOMMENDATIONS[label])

    day_ago = now - timedelta(hours=24)
    if any(a.severity == "critical" and a.created_at > day_ago for a in alerts):
        score += 40
        concerns.append("Recent critical alerts")
        recommendations.append("Urgent medical evaluation recommended")

    if concerns:
        level = "High" if score > 70 else "Medium" if score > 40 else "Low"
        summary = f"Patient shows {', '.join(concerns)}. Risk level: {level}"
    else:
        summary = "Patient vitals are within normal ranges"

    return {
        "riskScore": min(score, 100),
        "summary": summary,
        "recommendations": recommendations,
        "concerns": concerns,
    }


def employee_risk_level(latest: Optional[VitalsReading], active_alerts: Sequence) -> str:
    """Point-based low / medium / high rating for the employer roster."""
    if latest is None and not active_alerts:
        return "low"

    points = 0
    if latest is not None:
        if _heart_rate_abnormal(latest):
            points += 2
        if _blood_pressure_high(latest):
            points += 2
        if latest.temperature > FEVER_TEMPERATURE:
            points += 3
        if latest.oxygen_saturation < LOW_OXYGEN:
            points += 3

    weights = {"critical": 3, "high": 2, "medium": 1}
    points += sum(weights.get(a.severity, 0) for a in active_alerts)

    if points >= 8:
        return "high"
    if points >= 4:
        return "medium"
    return "low"


def patient_urgency(latest_is_emergency: Optional[bool], active_alerts: Sequence) -> str:
    """
    Urgency for the doctor's patient list. Patients without any vitals are low.
    """
    if latest_is_emergency is None:
        return "low"
    if latest_is_emergency or any(a.severity == "high" for a in active_alerts):
        return "high"
    if any(a.severity == "medium" for a in active_alerts):
        return "medium"
    return "low"

"""
PraanaCare - Workforce Analytics

Aggregations behind the health overview, trend charts and the employer
dashboard. Every function works on already-loaded rows:

  - vitals: objects with ``reading()``, ``timestamp`` and ``patient_id``
  - alerts: objects with ``type``, ``severity``, ``created_at`` and ``patient_id``

so the same code serves ORM rows and test doubles.
"""

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Sequence

from praanacare.config import DEFAULT_ALERT_PENALTY, EMPLOYER_ALERT_PENALTY, ALERT_SEVERITIES
from praanacare.services.scoring import health_index
from praanacare.utils.helpers import safe_divide, start_of_day


def _index(vitals: Sequence, alerts: Sequence, penalty: int = DEFAULT_ALERT_PENALTY) -> float:
    return health_index([v.reading() for v in vitals], alerts, alert_penalty=penalty)


def severity_distribution(alerts: Sequence) -> Dict[str, int]:
    distribution = {severity: 0 for severity in ALERT_SEVERITIES}
    for alert in alerts:
        if alert.severity in distribution:
            distribution[alert.severity] += 1
    return distribution


def overall_trend(vitals: Sequence, alerts: Sequence) -> str:
    """
    Compare the health index of the newer half of the readings to the older half.

    Args:
        vitals: Readings, newest first
        alerts: Alerts in the same window (penalise both halves alike)

    Returns:
        str: improving | declining | stable (a change of more than 10 points counts)
    """
    if len(vitals) < 2:
        return "stable"

    middle = len(vitals) // 2
    recent, older = vitals[:middle], vitals[middle:]
    difference = _index(recent, alerts) - _index(older, alerts)

    if difference > 10:
        return "improving"
    if difference < -10:
        return "declining"
    return "stable"


def health_recommendations(index: float, risk_factors: Dict[str, int]) -> List[str]:
    recommendations = []
    if index < 70:
        recommendations.append("Implement enhanced health monitoring protocols")
        recommendations.append("Increase frequency of health check-ups")
    if risk_factors.get("heat_stress", 0) > 5:
        recommendations.append("Improve workplace cooling and hydration facilities")
    if risk_factors.get("fatigue", 0) > 3:
        recommendations.append("Optimize work schedules and break patterns")
    if risk_factors.get("respiratory", 0) > 2:
        recommendations.append("Enhance air quality monitoring and filtration")
    return recommendations


def health_analytics(vitals: Sequence, alerts: Sequence, period: str) -> dict:
    """
    Overview of workforce health for a reporting period.

    Args:
        vitals: Readings in the period, newest first
        alerts: Alerts created in the period
        period: Period label echoed back

    Returns:
        dict: period, summary, riskDistribution, topRiskFactors, recommendations
    """
    index = _index(vitals, alerts)
    risk_factors = Counter(alert.type for alert in alerts)

    return {
        "period": period,
        "summary": {
            "totalVitals": len(vitals),
            "totalAlerts": len(alerts),
            "uniquePatients": len({v.patient_id for v in vitals}),
            "healthIndex": index,
            "trend": overall_trend(vitals, alerts),
        },
        "riskDistribution": severity_distribution(alerts),
        "topRiskFactors": [
            {"type": type, "count": count}
            for type, count in risk_factors.most_common(5)
        ],
        "recommendations": health_recommendations(index, risk_factors),
    }


def _days(start: datetime, end: datetime):
    """Yield (label, day_start, day_end) for each day the window covers."""
    day_start = start_of_day(start)
    while day_start < end:
        yield day_start.date().isoformat(), day_start, day_start + timedelta(days=1)
        day_start += timedelta(days=1)


def daily_vital_averages(vitals: Sequence, start: datetime, end: datetime) -> List[dict]:
    """Per-day average vitals; days without readings are skipped."""
    trend = []
    for label, day_start, day_end in _days(start, end):
        day = [v for v in vitals if day_start <= v.timestamp < day_end]
        if not day:
            continue
        count = len(day)
        trend.append({
            "date": label,
            "heartRate": round(sum(v.heart_rate for v in day) / count),
            "bloodPressure": round(sum(v.systolic for v in day) / count),
            "temperature": round(sum(v.temperature for v in day) / count, 1),
            "oxygenSaturation": round(sum(v.oxygen_saturation for v in day) / count),
            "readings": count,
        })
    return trend


def daily_health_trend(vitals: Sequence, alerts: Sequence, start: datetime, end: datetime) -> List[dict]:
    """Per-day health index (employer weighting), incidents and readings; every day is listed."""
    trend = []
    for label, day_start, day_end in _days(start, end):
        day_vitals = [v for v in vitals if day_start <= v.timestamp < day_end]
        day_alerts = [a for a in alerts if day_start <= a.created_at < day_end]
        trend.append({
            "date": label,
            "healthIndex": _index(day_vitals, day_alerts, EMPLOYER_ALERT_PENALTY),
            "incidents": len(day_alerts),
            "vitalsRecorded": len(day_vitals),
        })
    return trend


def productivity_impact(vitals: Sequence, alerts: Sequence) -> dict:
    total = len({v.patient_id for v in vitals})
    affected = len({a.patient_id for a in alerts})
    impact = safe_divide(affected, total) * 100
    return {
        "totalEmployees": total,
        "affectedEmployees": affected,
        "impactPercentage": impact,
        "avgProductivity": max(100 - impact, 0),
    }


def employer_recommendations(index: float, risk_factors: Dict[str, int], alerts: Sequence) -> List[dict]:
    """Dashboard recommendations from the health index, alert mix and alert volume."""
    recommendations = []
    if index < 70:
        recommendations.append({
            "type": "high",
            "title": "Improve Workplace Health Conditions",
            "description": "Health index is below optimal levels. Consider implementing additional safety measures.",
            "impact": "High",
            "cost": "$5,000",
            "roi": "6 months",
        })
    if risk_factors.get("heat_stress", 0) > 5:
        recommendations.append({
            "type": "medium",
            "title": "Increase Hydration Stations",
            "description": "High number of heat stress incidents detected. Add more hydration stations.",
            "impact": "Medium",
            "cost": "$2,400",
            "roi": "3 months",
        })
    if len(alerts) > 10:
        recommendations.append({
            "type": "high",
            "title": "Implement Staggered Break Schedules",
            "description": "High incident rate detected. Implement cooling breaks every 2 hours.",
            "impact": "High",
            "cost": "$0",
            "roi": "Immediate",
        })
    return recommendations


def ai_employer_recommendations(vitals: Sequence, alerts: Sequence, period: str) -> List[dict]:
    index = _index(vitals, alerts)
    recommendations = []

    if index < 70:
        recommendations.append({
            "type": "high",
            "title": "Implement Enhanced Safety Protocols",
            "description": f"Health index is {index}%, below optimal levels. "
                           "Implement additional safety measures and monitoring.",
            "impact": "High",
            "estimatedCost": "$10,000",
            "expectedROI": "6 months",
            "affectedWorkers": len({v.patient_id for v in vitals}),
        })

    if len(alerts) > 20:
        recommendations.append({
            "type": "critical",
            "title": "Emergency Response Protocol Activation",
            "description": f"{len(alerts)} incidents detected in {period}. Activate emergency response protocols.",
            "impact": "Critical",
            "estimatedCost": "$5,000",
            "expectedROI": "Immediate",
            "affectedWorkers": len({a.patient_id for a in alerts}),
        })

    heat = [a for a in alerts if a.type == "heat_stress"]
    if len(heat) > 5:
        recommendations.append({
            "type": "medium",
            "title": "Increase Hydration Infrastructure",
            "description": f"{len(heat)} heat stress incidents detected. Add hydration stations and cooling areas.",
            "impact": "Medium",
            "estimatedCost": "$3,000",
            "expectedROI": "3 months",
            "affectedWorkers": len({a.patient_id for a in heat}),
        })

    return recommendations


def risk_factor_analysis(alerts: Sequence) -> dict:
    counts = Counter(alert.type for alert in alerts)
    total = len(alerts)
    distribution = [
        {
            "name": type.replace("_", " ").upper(),
            "value": count,
            "percentage": safe_divide(count, total) * 100,
        }
        for type, count in counts.items()
    ]
    top = {"name": "", "value": 0, "percentage": 0}
    for entry in distribution:
        if entry["value"] > top["value"]:
            top = entry
    return {"distribution": distribution, "topRiskFactor": top}


def predict_absenteeism(vitals: Sequence, alerts: Sequence) -> dict:
    """Expected absence percentage from a base of 5 plus health, incident and severity loadings."""
    index = _index(vitals, alerts, EMPLOYER_ALERT_PENALTY)
    incident_rate = len(alerts) / max(len(vitals), 1)
    critical = sum(1 for a in alerts if a.severity == "critical")

    predicted = 5
    if index < 60:
        predicted += 15
    if incident_rate > 0.1:
        predicted += 10
    if critical:
        predicted += 20

    return {
        "next7Days": min(predicted, 25),
        "next30Days": min(predicted * 1.5, 35),
        "factors": {
            "healthIndex": index,
            "incidentRate": incident_rate,
            "criticalAlerts": critical,
        },
    }


def roi_analysis(alerts: Sequence, vitals: Sequence) -> dict:
    employees = len({v.patient_id for v in vitals})
    incidents_prevented = len(alerts) * 0.7

    cost_reduction = incidents_prevented * 500
    productivity = employees * 50
    savings = cost_reduction + productivity
    system_cost = 10000

    return {
        "healthcareCostReduction": cost_reduction,
        "productivityImprovement": productivity,
        "totalMonthlySavings": savings,
        "systemCost": system_cost,
        "roi": round((savings - system_cost) / system_cost * 100),
        "paybackPeriod": math.ceil(system_cost / savings) if savings else None,
    }


def department_breakdown(patients: Sequence, vitals: Sequence, alerts: Sequence) -> List[dict]:
    """
    Per-department headcount, health index (employer weighting) and alert count.

    Args:
        patients: Active patients (``id`` and ``department``)
        vitals: Readings in the window
        alerts: Alerts in the window
    """
    departments: Dict[str, set] = {}
    for patient in patients:
        departments.setdefault(patient.department, set()).add(patient.id)

    breakdown = []
    for name, members in sorted(departments.items()):
        dept_vitals = [v for v in vitals if v.patient_id in members]
        dept_alerts = [a for a in alerts if a.patient_id in members]
        breakdown.append({
            "department": name,
            "employeeCount": len(members),
            "avgHealthIndex": _index(dept_vitals, dept_alerts, EMPLOYER_ALERT_PENALTY),
            "totalAlerts": len(dept_alerts),
        })
    return breakdown


def department_counts(patients: Sequence) -> List[dict]:
    counts = Counter(p.department for p in patients)
    return [{"department": name, "count": count} for name, count in sorted(counts.items())]


def alert_type_counts(alerts: Sequence) -> List[dict]:
    counts = Counter(a.type for a in alerts)
    return [{"type": name, "count": count} for name, count in counts.most_common()]

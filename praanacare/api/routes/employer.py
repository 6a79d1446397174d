"""
PraanaCare Health API - Employer Routes

Workforce dashboards, analytics and alert responses.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from praanacare.api.dependencies import (
    get_employer_profile,
    get_request_id,
    check_rate_limit,
    require_role,
)
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import (
    AlertOut,
    EmployerOut,
    ErrorResponse,
    PatientOut,
    RespondRequest,
    VitalsOut,
)
from praanacare.config import EMPLOYER_ALERT_PENALTY, DEFAULT_PERIOD
from praanacare.core.actors import Actor
from praanacare.core.logging import log_request
from praanacare.db.base import get_db
from praanacare.db.models import Employer, Patient
from praanacare.realtime.publisher import EventPublisher, get_publisher
from praanacare.services import alert_service, analytics, vitals_service
from praanacare.services.scoring import employee_risk_level, health_index
from praanacare.utils.helpers import pagination, period_window, period_delta, to_naive_utc

router = APIRouter(
    prefix="/employer",
    tags=["Employer"],
    dependencies=[Depends(check_rate_limit), Depends(require_role("employer"))]
)


def active_patients(db: Session, department: Optional[str] = None) -> List[Patient]:
    query = db.query(Patient).filter(Patient.is_active.is_(True))
    if department:
        query = query.filter(Patient.department == department)
    return query.all()


@router.get("/dashboard", summary="Employer dashboard")
async def dashboard(
    employer: Employer = Depends(get_employer_profile),
    db: Session = Depends(get_db)
):
    """
    Workforce health over the last seven days.

    The health index here weighs each active alert more heavily than the
    clinical views do.
    """
    start, end = period_window(DEFAULT_PERIOD)
    patients = active_patients(db)

    recent_vitals = vitals_service.in_window(db, start, end)
    active = alert_service.in_window(db, start, end, status="active")
    all_alerts = alert_service.in_window(db, start, end)

    index = health_index([v.reading() for v in recent_vitals], active, alert_penalty=EMPLOYER_ALERT_PENALTY)
    risk_factors = {row["type"]: row["count"] for row in analytics.alert_type_counts(all_alerts)}
    productivity = analytics.productivity_impact(recent_vitals, active)

    return {
        "success": True,
        "data": {
            "employer": EmployerOut.model_validate(employer),
            "statistics": {
                "totalEmployees": len(patients),
                "activeEmployees": len(patients),
                "healthIndex": index,
                "dailyIncidents": len(active),
                "avgProductivity": productivity["avgProductivity"],
            },
            "departmentStats": analytics.department_counts(patients),
            "riskFactors": analytics.alert_type_counts(all_alerts),
            "productivityData": productivity,
            "aiRecommendations": analytics.employer_recommendations(index, risk_factors, active),
            "recentAlerts": [AlertOut.model_validate(a) for a in active[:10]],
        },
    }


@router.get("/analytics", summary="Workforce analytics for a period")
async def workforce_analytics(
    period: str = DEFAULT_PERIOD,
    department: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    """
    Trend, department, risk factor, absenteeism and ROI analytics.

    Args:
        period: 1d | 7d | 30d | 90d (unknown values mean 7d)
        department: Restrict to one department
        start_date: Explicit window start (overrides period)
        end_date: Explicit window end (defaults to now)
    """
    end = to_naive_utc(end_date) or datetime.utcnow()
    start = to_naive_utc(start_date) or end - period_delta(period)

    patients = active_patients(db)
    if department:
        patients = [p for p in patients if p.department == department]
    scope = [p.id for p in patients] if department else None

    vitals = vitals_service.in_window(db, start, end, patient_ids=scope)
    alerts = alert_service.in_window(db, start, end, patient_ids=scope)

    return {
        "success": True,
        "data": {
            "period": {"start": start, "end": end},
            "trendData": analytics.daily_health_trend(vitals, alerts, start, end),
            "departmentBreakdown": analytics.department_breakdown(patients, vitals, alerts),
            "riskAnalysis": analytics.risk_factor_analysis(alerts),
            "predictedAbsenteeism": analytics.predict_absenteeism(vitals, alerts),
            "roiAnalysis": analytics.roi_analysis(alerts, vitals),
        },
    }


@router.get("/alerts", summary="Alerts across the workforce")
async def alerts(
    severity: Optional[str] = None,
    type: Optional[str] = None,
    status_filter: str = Query("active", alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    items, total = alert_service.list_alerts(
        db,
        {"status": status_filter, "severity": severity, "type": type},
        page,
        limit,
    )
    return {
        "success": True,
        "data": {
            "alerts": [AlertOut.model_validate(a) for a in items],
            "pagination": pagination(page, limit, total),
        },
    }


@router.put(
    "/alerts/{alert_id}/respond",
    summary="Record an employer response to an alert",
    responses={404: {"model": ErrorResponse, "description": "Alert not found"}}
)
async def respond_to_alert(
    alert_id: str,
    payload: RespondRequest,
    actor: Actor = Depends(require_role("employer")),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    """
    Append a notification action. The alert's status is left unchanged.
    """
    log_request(endpoint="/employer/alerts/respond", method="PUT", request_id=request_id, alert_id=alert_id)

    with domain_errors("/employer/alerts/respond", request_id):
        alert = await alert_service.respond(
            db, alert_id, actor.user.id, publisher, action=payload.action, notes=payload.notes
        )
        return {"success": True, "alert": AlertOut.model_validate(alert)}


@router.get("/employees", summary="Employee health overview")
async def employees(
    department: Optional[str] = None,
    risk_level: Optional[str] = Query(None, alias="riskLevel", pattern="^(low|medium|high)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    query = db.query(Patient).filter(Patient.is_active.is_(True))
    if department:
        query = query.filter(Patient.department == department)

    total = query.count()
    page_items = (
        query.order_by(Patient.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    rows = []
    for employee in page_items:
        latest = vitals_service.latest(db, employee.id)
        active = alert_service.active_alerts(db, patient_id=employee.id)
        row = PatientOut.model_validate(employee).model_dump(by_alias=True)
        row.update({
            "latestVitals": VitalsOut.model_validate(latest) if latest else None,
            "activeAlerts": [AlertOut.model_validate(a) for a in active],
            "riskLevel": employee_risk_level(latest.reading() if latest else None, active),
        })
        rows.append(row)

    if risk_level:
        rows = [row for row in rows if row["riskLevel"] == risk_level]

    return {
        "success": True,
        "data": {
            "employees": rows,
            "pagination": pagination(page, limit, total),
        },
    }

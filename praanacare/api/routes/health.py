"""
PraanaCare Health API - Health Data Routes

Realtime vitals, device ingestion, active alerts, analytics and risk
assessment, available to every authenticated role.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from praanacare.api.dependencies import get_current_actor, get_request_id, check_rate_limit
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import (
    AlertOut,
    DeviceVitalsCreate,
    ErrorResponse,
    RiskAssessmentRequest,
    VitalsOut,
)
from praanacare.config import DEFAULT_PERIOD
from praanacare.core.exceptions import NotFoundError
from praanacare.core.logging import log_request
from praanacare.db.base import get_db
from praanacare.db.models import Patient, Vitals
from praanacare.realtime.publisher import EventPublisher, get_publisher
from praanacare.services import alert_service, analytics, vitals_service
from praanacare.services.scoring import (
    EnvironmentReading,
    VitalsReading,
    assess_risk,
    vitals_trends,
)
from praanacare.utils.helpers import period_window

router = APIRouter(
    prefix="/health",
    tags=["Health"],
    dependencies=[Depends(check_rate_limit), Depends(get_current_actor)]
)


def _department_scope(db: Session, department: Optional[str]):
    if not department:
        return None
    return [
        p.id for p in db.query(Patient)
        .filter(Patient.department == department, Patient.is_active.is_(True))
        .all()
    ]


def _load_patient(db: Session, patient_id: str) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if patient is None:
        raise NotFoundError("Patient not found")
    return patient


@router.get(
    "/vitals/realtime",
    summary="Latest reading and short-term trends",
    responses={404: {"model": ErrorResponse, "description": "No vitals data found"}}
)
async def realtime_vitals(
    patient_id: str = Query(..., alias="patientId"),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    with domain_errors("/health/vitals/realtime", request_id):
        recent = vitals_service.recent(db, patient_id, limit=10)
        if not recent:
            raise NotFoundError("No vitals data found")

        return {
            "success": True,
            "data": {
                "current": VitalsOut.model_validate(recent[0]),
                "trends": vitals_trends([v.reading() for v in recent]),
                "timestamp": datetime.utcnow(),
            },
        }


@router.post(
    "/vitals/stream",
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a reading from a device",
    responses={
        400: {"model": ErrorResponse, "description": "Out-of-range or missing vitals"},
        404: {"model": ErrorResponse, "description": "Patient not found"},
    }
)
async def stream_vitals(
    payload: DeviceVitalsCreate,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    """
    Same validation and escalation as patient submissions, recorded as ``device``.
    """
    log_request(endpoint="/health/vitals/stream", method="POST", request_id=request_id, patient_id=payload.patient_id)

    with domain_errors("/health/vitals/stream", request_id):
        patient = _load_patient(db, payload.patient_id)
        vitals, emergency = await vitals_service.record(
            db, patient, payload.to_record(), "device", publisher, request_id=request_id
        )
        return {
            "success": True,
            "data": VitalsOut.model_validate(vitals),
            "isEmergency": emergency,
        }


@router.get("/alerts/active", summary="Active alerts")
async def active_alerts(
    severity: Optional[str] = None,
    type: Optional[str] = None,
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db)
):
    items, _ = alert_service.list_alerts(
        db,
        {"status": "active", "severity": severity, "type": type, "patient_id": patient_id},
        1,
        50,
    )
    return {"success": True, "data": [AlertOut.model_validate(a) for a in items]}


@router.get("/analytics/overview", summary="Health analytics overview")
async def analytics_overview(
    period: str = DEFAULT_PERIOD,
    department: Optional[str] = None,
    db: Session = Depends(get_db)
):
    start, end = period_window(period)
    vitals = vitals_service.in_window(db, start, end, patient_ids=_department_scope(db, department))
    alerts = alert_service.in_window(db, start, end)

    return {"success": True, "data": analytics.health_analytics(vitals, alerts, period)}


@router.get("/trends", summary="Daily vitals averages")
async def trends(
    period: str = "30d",
    patient_id: Optional[str] = Query(None, alias="patientId"),
    department: Optional[str] = None,
    db: Session = Depends(get_db)
):
    start, end = period_window(period)
    scope = [patient_id] if patient_id else _department_scope(db, department)
    vitals = vitals_service.in_window(db, start, end, patient_ids=scope)

    return {"success": True, "data": analytics.daily_vital_averages(vitals, start, end)}


@router.post(
    "/risk-assessment",
    summary="Full risk assessment for a patient",
    responses={404: {"model": ErrorResponse, "description": "Patient not found"}}
)
async def risk_assessment(
    payload: RiskAssessmentRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    """
    Combine the submitted reading and workplace conditions with the
    patient's last 20 readings and last 10 alerts.

    Returns:
        dict: assessment plus the severity distribution of the last 24 hours' alerts
    """
    with domain_errors("/health/risk-assessment", request_id):
        patient = _load_patient(db, payload.patient_id)
        history = [v.reading() for v in vitals_service.recent(db, patient.id, limit=20)]
        alerts = alert_service.recent_for_patient(db, patient.id, limit=10)

        current = None
        if payload.vitals_data is not None:
            v = payload.vitals_data
            current = VitalsReading(
                heart_rate=v.heart_rate,
                systolic=v.blood_pressure.systolic,
                diastolic=v.blood_pressure.diastolic,
                temperature=v.temperature,
                oxygen_saturation=v.oxygen_saturation,
            )

        environment = None
        if payload.environmental_data is not None:
            e = payload.environmental_data
            environment = EnvironmentReading(
                ambient_temperature=e.ambient_temperature,
                humidity=e.humidity,
                air_quality=e.air_quality,
            )

        assessment = assess_risk(current, environment, history, alerts)
        day_ago = datetime.utcnow() - timedelta(hours=24)

        return {
            "success": True,
            "data": {
                "riskScore": assessment.risk_score,
                "riskLevel": assessment.risk_level,
                "riskFactors": assessment.risk_factors,
                "recommendations": assessment.recommendations,
                "assessment": {
                    "patient": {
                        "name": patient.user.full_name if patient.user else None,
                        "department": patient.department,
                        "shift": patient.shift,
                    },
                    "timestamp": datetime.utcnow(),
                    "confidence": assessment.confidence,
                },
                "riskDistribution": analytics.severity_distribution(
                    [a for a in alerts if a.created_at >= day_ago]
                ),
            },
        }


@router.get("/emergency-status", summary="Open emergencies across the workforce")
async def emergency_status(db: Session = Depends(get_db)):
    emergencies = alert_service.active_alerts(db, severities=["critical"])
    hour_ago = datetime.utcnow() - timedelta(hours=1)
    critical_vitals = (
        db.query(Vitals)
        .filter(Vitals.is_emergency.is_(True), Vitals.timestamp >= hour_ago)
        .order_by(Vitals.timestamp.desc())
        .all()
    )

    return {
        "success": True,
        "data": {
            "emergencyAlerts": [AlertOut.model_validate(a) for a in emergencies],
            "criticalVitals": [VitalsOut.model_validate(v) for v in critical_vitals],
            "totalEmergencies": len(emergencies) + len(critical_vitals),
            "lastUpdated": datetime.utcnow(),
        },
    }

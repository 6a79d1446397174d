"""
PraanaCare Health API - Doctor Routes

Patient triage views, alert review and consultations.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from praanacare.api.dependencies import (
    get_doctor_profile,
    get_request_id,
    check_rate_limit,
    require_role,
)
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import (
    AlertOut,
    ApproveRequest,
    ChatOut,
    ConsultationCreate,
    DismissRequest,
    DoctorOut,
    ErrorResponse,
    PatientOut,
    VitalsOut,
)
from praanacare.core.actors import Actor
from praanacare.core.exceptions import NotFoundError
from praanacare.core.logging import log_request
from praanacare.db.base import get_db
from praanacare.db.models import Alert, Chat, Doctor, Patient
from praanacare.realtime.publisher import EventPublisher, get_publisher
from praanacare.services import alert_service, chat_service, vitals_service
from praanacare.services.scoring import (
    assess_risk,
    patient_summary,
    patient_urgency,
)
from praanacare.utils.helpers import pagination, start_of_day, to_naive_utc

router = APIRouter(
    prefix="/doctor",
    tags=["Doctor"],
    dependencies=[Depends(check_rate_limit), Depends(require_role("doctor"))]
)

URGENT_SEVERITIES = ["high", "critical"]


def _patient_row(db: Session, patient: Patient) -> dict:
    latest = vitals_service.latest(db, patient.id)
    active = alert_service.active_alerts(db, patient_id=patient.id)
    row = PatientOut.model_validate(patient).model_dump(by_alias=True)
    row.update({
        "latestVitals": VitalsOut.model_validate(latest) if latest else None,
        "activeAlerts": [AlertOut.model_validate(a) for a in active],
        "urgency": patient_urgency(latest.is_emergency if latest else None, active),
    })
    return row


@router.get("/dashboard", summary="Doctor dashboard")
async def dashboard(
    doctor: Doctor = Depends(get_doctor_profile),
    db: Session = Depends(get_db)
):
    """
    Active patients, urgent alerts, today's consultations and counters.
    """
    patients = (
        db.query(Patient)
        .filter(Patient.is_active.is_(True))
        .order_by(Patient.created_at.desc())
        .all()
    )
    urgent = alert_service.active_alerts(db, severities=URGENT_SEVERITIES, limit=10)

    today = start_of_day(datetime.utcnow())
    consultations = (
        db.query(Chat)
        .filter(
            Chat.doctor_id == doctor.id,
            Chat.status == "active",
            Chat.created_at >= today,
            Chat.created_at < today + timedelta(days=1),
        )
        .order_by(Chat.created_at.desc())
        .all()
    )

    return {
        "success": True,
        "dashboard": {
            "doctor": DoctorOut.model_validate(doctor),
            "patients": [PatientOut.model_validate(p) for p in patients],
            "urgentAlerts": [AlertOut.model_validate(a) for a in urgent],
            "todaysConsultations": [ChatOut.model_validate(c) for c in consultations],
            "statistics": {
                "totalPatients": len(patients),
                "activeAlerts": db.query(Alert).filter(Alert.status == "active").count(),
                "urgentCases": len(alert_service.active_alerts(db, severities=URGENT_SEVERITIES)),
            },
        },
    }


@router.get("/patients", summary="Patients with latest vitals and urgency")
async def patients(
    urgency: Optional[str] = Query(None, pattern="^(low|medium|high)$"),
    department: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    One page of active patients. The urgency filter applies to the page,
    so a filtered page may hold fewer than ``limit`` rows.
    """
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
    rows = [_patient_row(db, p) for p in page_items]
    if urgency:
        rows = [row for row in rows if row["urgency"] == urgency]

    return {
        "success": True,
        "data": {
            "patients": rows,
            "pagination": pagination(page, limit, total),
        },
    }


@router.get(
    "/patients/{patient_id}",
    summary="Patient detail with summary and risk assessment",
    responses={404: {"model": ErrorResponse, "description": "Patient not found"}}
)
async def patient_detail(
    patient_id: str,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    with domain_errors("/doctor/patients/detail", request_id):
        patient = db.query(Patient).filter(Patient.id == patient_id).first()
        if patient is None:
            raise NotFoundError("Patient not found")

        vitals = vitals_service.recent(db, patient.id, limit=50)
        alerts, _ = alert_service.list_alerts(db, {"patient_id": patient.id}, 1, 20)
        chats = chat_service.patient_chats(db, patient.id)
        latest = vitals[0] if vitals else None

        readings = [v.reading() for v in vitals]
        assessment = assess_risk(
            readings[0] if readings else None,
            None,
            readings[:20],
            alerts[:10],
        )

        return {
            "success": True,
            "patient": PatientOut.model_validate(patient),
            "vitalsHistory": [VitalsOut.model_validate(v) for v in vitals],
            "alertsHistory": [AlertOut.model_validate(a) for a in alerts],
            "chatHistory": [ChatOut.model_validate(c) for c in chats],
            "aiSummary": patient_summary(latest.reading() if latest else None, alerts),
            "riskAssessment": {
                "riskScore": assessment.risk_score,
                "riskLevel": assessment.risk_level,
                "riskFactors": assessment.risk_factors,
                "recommendations": assessment.recommendations,
                "confidence": assessment.confidence,
            },
        }


@router.put(
    "/alerts/{alert_id}/approve",
    summary="Approve treatment and resolve an alert",
    responses={
        404: {"model": ErrorResponse, "description": "Alert not found"},
        409: {"model": ErrorResponse, "description": "Alert already closed"},
    }
)
async def approve_alert(
    alert_id: str,
    payload: ApproveRequest,
    actor: Actor = Depends(require_role("doctor")),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/doctor/alerts/approve", method="PUT", request_id=request_id, alert_id=alert_id)

    with domain_errors("/doctor/alerts/approve", request_id):
        alert = await alert_service.approve(
            db, alert_id, actor.user.id, publisher,
            treatment_plan=payload.treatment_plan,
            notes=payload.notes,
        )
        return {"success": True, "alert": AlertOut.model_validate(alert)}


@router.put(
    "/alerts/{alert_id}/dismiss",
    summary="Dismiss an alert",
    responses={
        404: {"model": ErrorResponse, "description": "Alert not found"},
        409: {"model": ErrorResponse, "description": "Alert not active"},
    }
)
async def dismiss_alert(
    alert_id: str,
    payload: DismissRequest,
    actor: Actor = Depends(require_role("doctor")),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/doctor/alerts/dismiss", method="PUT", request_id=request_id, alert_id=alert_id)

    with domain_errors("/doctor/alerts/dismiss", request_id):
        alert = await alert_service.dismiss(db, alert_id, actor.user.id, publisher, reason=payload.reason)
        return {"success": True, "alert": AlertOut.model_validate(alert)}


@router.post("/consultations", status_code=status.HTTP_201_CREATED, summary="Start a consultation")
async def start_consultation(
    payload: ConsultationCreate,
    doctor: Doctor = Depends(get_doctor_profile),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    with domain_errors("/doctor/consultations", request_id):
        chat = chat_service.start_consultation(
            db, doctor, payload.patient_id, payload.type, payload.priority.value
        )
        return {"success": True, "consultation": ChatOut.model_validate(chat)}


@router.get("/schedule", summary="Consultations for a day")
async def schedule(
    date: Optional[datetime] = None,
    doctor: Doctor = Depends(get_doctor_profile),
    db: Session = Depends(get_db)
):
    day = start_of_day(to_naive_utc(date) or datetime.utcnow())
    consultations = (
        db.query(Chat)
        .filter(
            Chat.doctor_id == doctor.id,
            Chat.created_at >= day,
            Chat.created_at < day + timedelta(days=1),
        )
        .order_by(Chat.created_at.asc())
        .all()
    )
    return {
        "success": True,
        "schedule": {
            "date": day.date().isoformat(),
            "consultations": [ChatOut.model_validate(c) for c in consultations],
            "availability": doctor.availability,
        },
    }

"""
PraanaCare Health API - Patient Routes

Worker-facing endpoints: dashboard, vitals submission and history,
own alerts and chats.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from praanacare.api.dependencies import (
    get_patient_profile,
    get_request_id,
    check_rate_limit,
    require_role,
)
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import (
    VitalsCreate,
    VitalsOut,
    AlertOut,
    ChatOut,
    ChatCreate,
    PatientOut,
    ErrorResponse,
)
from praanacare.core.actors import Actor
from praanacare.core.logging import log_request
from praanacare.db.base import get_db
from praanacare.db.models import Patient
from praanacare.realtime.publisher import EventPublisher, get_publisher
from praanacare.services import alert_service, chat_service, vitals_service
from praanacare.services.scoring import health_index
from praanacare.utils.helpers import pagination, to_naive_utc

router = APIRouter(
    prefix="/patient",
    tags=["Patient"],
    dependencies=[Depends(check_rate_limit), Depends(require_role("patient"))]
)


@router.get("/dashboard", summary="Patient dashboard")
async def dashboard(
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db)
):
    """
    Everything the worker's home screen needs. Read-only: calling it twice
    without new data returns the same content.
    """
    latest = vitals_service.latest(db, patient.id)
    recent_alerts = alert_service.recent_for_patient(db, patient.id, limit=5)
    active_chats = chat_service.patient_chats(db, patient.id, status="active")
    history = vitals_service.since(db, patient.id, datetime.utcnow() - timedelta(days=7))
    active = alert_service.active_alerts(db, patient_id=patient.id)

    return {
        "success": True,
        "dashboard": {
            "patient": PatientOut.model_validate(patient),
            "latestVitals": VitalsOut.model_validate(latest) if latest else None,
            "recentAlerts": [AlertOut.model_validate(a) for a in recent_alerts],
            "activeChats": [ChatOut.model_validate(c) for c in active_chats],
            "vitalsHistory": [VitalsOut.model_validate(v) for v in history],
            "healthIndex": health_index([v.reading() for v in history], active),
            "counts": {
                "activeAlerts": len(active),
                "activeChats": len(active_chats),
                "vitalsThisWeek": len(history),
            },
        },
    }


@router.post(
    "/vitals",
    status_code=status.HTTP_201_CREATED,
    summary="Record vitals",
    responses={400: {"model": ErrorResponse, "description": "Out-of-range or missing vitals"}}
)
async def record_vitals(
    payload: VitalsCreate,
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    """
    Store a reading submitted by the worker.

    Emergency readings raise a critical alert and an ``emergency-alert``
    event; every reading emits ``vitals-update``.

    Returns:
        dict: stored vitals and the emergency flag
    """
    log_request(endpoint="/patient/vitals", method="POST", request_id=request_id, patient_id=patient.id)

    with domain_errors("/patient/vitals", request_id):
        vitals, emergency = await vitals_service.record(
            db, patient, payload.to_record(), "patient", publisher, request_id=request_id
        )
        return {
            "success": True,
            "vitals": VitalsOut.model_validate(vitals),
            "isEmergency": emergency,
        }


@router.get("/vitals/history", summary="Paginated vitals history")
async def vitals_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db)
):
    items, total = vitals_service.history(
        db, patient.id, page, limit, to_naive_utc(start_date), to_naive_utc(end_date)
    )
    return {
        "success": True,
        "history": {
            "vitals": [VitalsOut.model_validate(v) for v in items],
            "pagination": pagination(page, limit, total),
        },
    }


@router.get("/alerts", summary="Own alerts")
async def alerts(
    status_filter: Optional[str] = Query(None, alias="status"),
    type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db)
):
    items, total = alert_service.list_alerts(
        db,
        {"patient_id": patient.id, "status": status_filter, "type": type},
        page,
        limit,
    )
    return {
        "success": True,
        "alerts": {
            "alerts": [AlertOut.model_validate(a) for a in items],
            "pagination": pagination(page, limit, total),
        },
    }


@router.put(
    "/alerts/{alert_id}/acknowledge",
    summary="Acknowledge an alert",
    responses={
        404: {"model": ErrorResponse, "description": "No such alert for this patient"},
        409: {"model": ErrorResponse, "description": "Alert already resolved or dismissed"},
    }
)
async def acknowledge_alert(
    alert_id: str,
    actor: Actor = Depends(require_role("patient")),
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/patient/alerts/acknowledge", method="PUT", request_id=request_id, alert_id=alert_id)

    with domain_errors("/patient/alerts/acknowledge", request_id):
        alert = alert_service.acknowledge(db, alert_id, patient.id, actor.user.id)
        return {"success": True, "acknowledged": True, "alert": AlertOut.model_validate(alert)}


@router.get("/chats", summary="Own chats")
async def chats(
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "chats": [ChatOut.model_validate(c) for c in chat_service.patient_chats(db, patient.id)],
    }


@router.post("/chats", status_code=status.HTTP_201_CREATED, summary="Start a chat")
async def start_chat(
    payload: ChatCreate,
    patient: Patient = Depends(get_patient_profile),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    with domain_errors("/patient/chats", request_id):
        chat = chat_service.start_chat(db, patient, payload.initial_message)
        return {"success": True, "chat": ChatOut.model_validate(chat)}

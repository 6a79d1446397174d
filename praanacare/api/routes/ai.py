"""
PraanaCare Health API - Assistant Routes

Assistant chat, vitals analysis and employer recommendations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from praanacare.api.dependencies import (
    get_assistant,
    get_current_actor,
    get_request_id,
    check_rate_limit,
    require_role,
)
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import AnalyzeVitalsRequest, ChatMessageRequest, ChatOut, ErrorResponse
from praanacare.config import DEFAULT_PERIOD
from praanacare.core.actors import Actor, PatientActor
from praanacare.core.exceptions import NotFoundError
from praanacare.core.logging import log_request
from praanacare.db.base import get_db
from praanacare.db.models import Patient
from praanacare.realtime.publisher import EventPublisher, get_publisher
from praanacare.services import alert_service, analytics, vitals_service
from praanacare.services.chat_service import ChatService, get_chat
from praanacare.services.scoring import VitalsReading, analyze_vitals
from praanacare.services.text_generation import AssistantService
from praanacare.utils.helpers import period_window

router = APIRouter(prefix="/ai", tags=["Assistant"], dependencies=[Depends(check_rate_limit)])


@router.post(
    "/chat",
    summary="Send a message to the health assistant",
    responses={
        400: {"model": ErrorResponse, "description": "Empty message or no patient to chat about"},
        403: {"model": ErrorResponse, "description": "Another patient's chat"},
        404: {"model": ErrorResponse, "description": "Chat or patient not found"},
    }
)
async def chat(
    payload: ChatMessageRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    assistant: AssistantService = Depends(get_assistant),
    publisher: EventPublisher = Depends(get_publisher),
    request_id: str = Depends(get_request_id)
):
    """
    Append the message and the assistant's reply to a chat.

    Replies with a message risk above 80 also raise a critical alert and
    an ``emergency-alert`` event flagged ``aiDetected``.

    Returns:
        dict: The updated chat
    """
    log_request(
        endpoint="/ai/chat",
        method="POST",
        request_id=request_id,
        message_length=len(payload.message),
        has_chat_id=payload.chat_id is not None
    )

    with domain_errors("/ai/chat", request_id):
        conversation = await ChatService(assistant).send(
            db,
            actor,
            payload.message,
            publisher,
            chat_id=payload.chat_id,
            patient_id=payload.patient_id,
            request_id=request_id,
        )
        return {"success": True, "chat": ChatOut.model_validate(conversation)}


@router.get(
    "/chat/{chat_id}",
    summary="Chat history",
    responses={
        403: {"model": ErrorResponse, "description": "Another patient's chat"},
        404: {"model": ErrorResponse, "description": "Chat not found"},
    }
)
async def chat_history(
    chat_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    with domain_errors("/ai/chat/history", request_id):
        return {"success": True, "chat": ChatOut.model_validate(get_chat(db, actor, chat_id))}


@router.post("/analyze-vitals", summary="Analyse a reading against limits and baseline")
async def analyze(
    payload: AnalyzeVitalsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    """
    Score a reading and compare it with the patient's last ten readings.

    Raises:
        HTTPException: 404 when no patient can be resolved
    """
    with domain_errors("/ai/analyze-vitals", request_id):
        if payload.patient_id:
            patient = db.query(Patient).filter(Patient.id == payload.patient_id).first()
        elif isinstance(actor, PatientActor):
            patient = actor.profile
        else:
            patient = None
        if patient is None:
            raise NotFoundError("Patient not found")

        vitals = payload.vitals_data
        current = VitalsReading(
            heart_rate=vitals.heart_rate,
            systolic=vitals.blood_pressure.systolic,
            diastolic=vitals.blood_pressure.diastolic,
            temperature=vitals.temperature,
            oxygen_saturation=vitals.oxygen_saturation,
        )
        history = [v.reading() for v in vitals_service.recent(db, patient.id, limit=10)]
        analysis = analyze_vitals(current, history)

        return {
            "success": True,
            "analysis": {
                "riskScore": analysis.risk_score,
                "concerns": analysis.concerns,
                "recommendations": analysis.recommendations,
                "severity": analysis.severity,
                "aiInsights": analysis.insights,
            },
        }


@router.post("/generate-recommendations", summary="Workforce recommendations for employers")
async def generate_recommendations(
    period: str = DEFAULT_PERIOD,
    department: Optional[str] = Query(None),
    _: Actor = Depends(require_role("employer")),
    db: Session = Depends(get_db)
):
    start, end = period_window(period)

    scope = None
    if department:
        scope = [
            p.id for p in db.query(Patient)
            .filter(Patient.department == department, Patient.is_active.is_(True))
            .all()
        ]

    vitals = vitals_service.in_window(db, start, end, patient_ids=scope)
    alerts = alert_service.in_window(db, start, end)

    return {
        "success": True,
        "recommendations": analytics.ai_employer_recommendations(vitals, alerts, period),
    }

"""
PraanaCare - Chat Service

Assistant conversations and doctor consultations. Messages are only ever
appended; an assistant turn adds the user message, the assistant reply
and one action message per suggested action.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from praanacare.config import ASSISTANT_PERSONA, ASSISTANT_INSTRUCTIONS
from praanacare.core.actors import Actor, PatientActor
from praanacare.core.exceptions import NotFoundError, AccessDeniedError
from praanacare.core.logging import logger
from praanacare.db.models import Chat, Patient, Doctor, User, Vitals
from praanacare.monitoring.metrics import metrics_collector
from praanacare.realtime.publisher import EventPublisher, EMERGENCY_ALERT
from praanacare.services import alert_service, vitals_service
from praanacare.services.text_generation import AssistantService, AssistantReply
from praanacare.utils.helpers import generate_message_id


def build_context(
    patient: Optional[Patient],
    user: Optional[User],
    latest: Optional[Vitals],
    alerts: Sequence
) -> str:
    """
    System prompt describing who the assistant is talking to.

    Args:
        patient: Patient profile, if known
        user: The patient's user record (for the name)
        latest: Latest reading, if any
        alerts: Recent alerts, newest first

    Returns:
        str: Prompt text
    """
    context = ASSISTANT_PERSONA

    if patient is not None:
        if user is not None:
            context += f"Patient: {user.first_name} {user.last_name}, "
        context += f"Department: {patient.department}, "
        context += f"Shift: {patient.shift}. "

    if latest is not None:
        context += f"Latest vitals: Heart Rate: {latest.heart_rate} bpm, "
        context += f"Blood Pressure: {latest.systolic}/{latest.diastolic} mmHg, "
        context += f"Temperature: {latest.temperature}°F, "
        context += f"Oxygen Saturation: {latest.oxygen_saturation}%. "

    if alerts:
        summary = ", ".join(f"{a.type} ({a.severity})" for a in alerts)
        context += f"Recent alerts: {summary}. "

    return context + ASSISTANT_INSTRUCTIONS


def _message(type: str, content: str, **extra) -> dict:
    message = {
        "id": generate_message_id(),
        "type": type,
        "content": content,
        "timestamp": datetime.utcnow().isoformat(),
    }
    message.update(extra)
    return message


def reply_messages(text: str, reply: AssistantReply) -> List[dict]:
    """The messages one assistant turn appends, in order."""
    messages = [
        _message("user", text),
        _message("ai", reply.content, metadata={
            "confidence": reply.confidence,
            "riskScore": reply.risk_score,
            "recommendations": list(reply.recommendations),
        }),
    ]
    for action in reply.actions:
        messages.append(_message("action", action["title"], action={
            "type": action["type"],
            "title": action["title"],
            "description": action["description"],
            "executed": False,
        }))
    return messages


def _own_patient_id(actor: Actor) -> Optional[str]:
    if isinstance(actor, PatientActor) and actor.profile is not None:
        return actor.profile.id
    return None


def _check_access(actor: Actor, chat: Chat):
    if isinstance(actor, PatientActor) and chat.patient_id != _own_patient_id(actor):
        raise AccessDeniedError("Access denied")


def get_chat(db: Session, actor: Actor, chat_id: str) -> Chat:
    """
    Raises:
        NotFoundError: No such chat
        AccessDeniedError: A patient asked for another patient's chat
    """
    chat = db.query(Chat).filter(Chat.id == chat_id).first()
    if chat is None:
        raise NotFoundError("Chat not found")
    _check_access(actor, chat)
    return chat


def active_chat(db: Session, patient_id: str, doctor_id: Optional[str] = None) -> Optional[Chat]:
    """Most recently updated active chat for a patient (and doctor, if given)."""
    query = db.query(Chat).filter(Chat.patient_id == patient_id, Chat.status == "active")
    if doctor_id is not None:
        query = query.filter(Chat.doctor_id == doctor_id)
    return query.order_by(Chat.updated_at.desc()).first()


def patient_chats(db: Session, patient_id: str, status: Optional[str] = None) -> List[Chat]:
    query = db.query(Chat).filter(Chat.patient_id == patient_id)
    if status is not None:
        query = query.filter(Chat.status == status)
    return query.order_by(Chat.updated_at.desc()).all()


def start_chat(db: Session, patient: Patient, initial_message: Optional[str] = None) -> Chat:
    """Open a new chat for a patient, optionally seeded with their first message."""
    chat = Chat(patient_id=patient.id, messages=[], status="active", priority="medium", tags=[])
    if initial_message:
        chat.append_message(_message("user", initial_message))
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


def start_consultation(
    db: Session,
    doctor: Doctor,
    patient_id: str,
    type: Optional[str] = None,
    priority: str = "medium"
) -> Chat:
    """Find or open the active consultation chat between a doctor and a patient."""
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if patient is None:
        raise NotFoundError("Patient not found")

    chat = active_chat(db, patient.id, doctor_id=doctor.id)
    if chat is None:
        chat = Chat(
            patient_id=patient.id,
            doctor_id=doctor.id,
            messages=[],
            status="active",
            priority=priority,
            tags=[type] if type else [],
        )
        db.add(chat)
        db.commit()
        db.refresh(chat)
        logger.info(f"Consultation opened between doctor {doctor.id} and patient {patient.id}")
    return chat


class ChatService:
    """
    Runs one assistant turn: resolve the patient and chat, generate the
    reply, store the messages and escalate when the message risk is an
    emergency.
    """

    def __init__(self, assistant: AssistantService):
        self.assistant = assistant

    def _resolve_patient(self, db: Session, actor: Actor, patient_id: Optional[str]) -> Optional[Patient]:
        if patient_id is None:
            return actor.profile if isinstance(actor, PatientActor) else None

        own = _own_patient_id(actor)
        if isinstance(actor, PatientActor) and patient_id != own:
            raise AccessDeniedError("Access denied")

        patient = db.query(Patient).filter(Patient.id == patient_id).first()
        if patient is None:
            raise NotFoundError("Patient not found")
        return patient

    async def send(
        self,
        db: Session,
        actor: Actor,
        message: str,
        publisher: EventPublisher,
        chat_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Chat:
        """
        Append a user message and the assistant's answer to a chat.

        Args:
            db: Database session
            actor: Caller
            message: User text
            publisher: Dashboard event publisher
            chat_id: Existing chat to continue
            patient_id: Patient the conversation is about (defaults to the calling patient)
            request_id: Originating request id

        Returns:
            Chat: The updated chat

        Raises:
            ValueError: Empty message, or no patient to attach a new chat to
            NotFoundError: Unknown chat or patient
            AccessDeniedError: Patient touching another patient's chat
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        patient = self._resolve_patient(db, actor, patient_id)

        chat = None
        if chat_id:
            chat = get_chat(db, actor, chat_id)
            if patient is None:
                patient = chat.patient
        elif patient is not None:
            chat = active_chat(db, patient.id)

        if chat is None:
            if patient is None:
                raise ValueError("patientId is required to start a chat")
            chat = Chat(patient_id=patient.id, messages=[], status="active", priority="medium", tags=[])
            db.add(chat)

        latest = vitals_service.latest(db, patient.id) if patient else None
        alerts = alert_service.recent_for_patient(db, patient.id) if patient else []
        context = build_context(patient, patient.user if patient else None, latest, alerts)

        reply = await run_in_threadpool(self.assistant.reply, message, context)

        new_messages = reply_messages(message, reply)
        for item in new_messages:
            chat.append_message(item)
        db.commit()
        db.refresh(chat)
        metrics_collector.record_chat(len(new_messages), reply.origin)

        if reply.is_emergency and patient is not None:
            alert = alert_service.create_alert(
                db,
                patient_id=patient.id,
                type="emergency",
                severity="critical",
                title="AI Detected Emergency Condition",
                description=reply.content,
                ai_analysis={
                    "riskScore": reply.risk_score,
                    "recommendations": list(reply.recommendations),
                    "confidence": reply.confidence,
                },
            )
            alert_service.record_emergency(
                alert, source="assistant", risk_score=reply.risk_score, request_id=request_id
            )
            await publisher.publish(EMERGENCY_ALERT, {
                "patientId": patient.id,
                "alertId": alert.id,
                "severity": "critical",
                "aiDetected": True,
            })

        return chat

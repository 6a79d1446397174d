"""
PraanaCare - Vitals Service

Stores readings, runs emergency detection on every write and publishes
the resulting dashboard events.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from praanacare.config import VITALS_SOURCES
from praanacare.core.logging import logger
from praanacare.db.models import Patient, Vitals
from praanacare.monitoring.metrics import metrics_collector
from praanacare.realtime.publisher import EventPublisher, VITALS_UPDATE, EMERGENCY_ALERT
from praanacare.services import alert_service
from praanacare.services.scoring import is_emergency


def vitals_payload(vitals: Vitals) -> Dict[str, Any]:
    """camelCase view of a stored reading, as sent to dashboards."""
    return {
        "id": vitals.id,
        "patientId": vitals.patient_id,
        "timestamp": vitals.timestamp,
        "heartRate": vitals.heart_rate,
        "bloodPressure": vitals.blood_pressure,
        "temperature": vitals.temperature,
        "oxygenSaturation": vitals.oxygen_saturation,
        "respiratoryRate": vitals.respiratory_rate,
        "bloodGlucose": vitals.blood_glucose,
        "weight": vitals.weight,
        "height": vitals.height,
        "bmi": vitals.bmi,
        "environmentalData": vitals.environmental_data,
        "symptoms": list(vitals.symptoms or []),
        "notes": vitals.notes,
        "recordedBy": vitals.recorded_by,
        "isEmergency": vitals.is_emergency,
    }


async def record(
    db: Session,
    patient: Patient,
    values: Dict[str, Any],
    source: str,
    publisher: EventPublisher,
    request_id: Optional[str] = None
) -> Tuple[Vitals, bool]:
    """
    Persist a reading and escalate it when it crosses an emergency threshold.

    The reading is committed before the alert is written; a failure while
    creating the alert leaves the reading stored with its emergency flag.

    Args:
        db: Database session
        patient: Owning patient profile
        values: Validated, flat snake_case reading fields
        source: patient | device | doctor | ai
        publisher: Dashboard event publisher
        request_id: Originating request id

    Returns:
        tuple: (stored vitals, emergency flag)
    """
    if source not in VITALS_SOURCES:
        raise ValueError(f"Unknown vitals source: {source}")

    vitals = Vitals(patient_id=patient.id, recorded_by=source, **values)
    if vitals.timestamp is None:
        vitals.timestamp = datetime.utcnow()
    db.add(vitals)
    db.commit()
    db.refresh(vitals)

    emergency = is_emergency(vitals.reading())
    metrics_collector.record_vitals(source, emergency)

    if emergency:
        vitals.is_emergency = True
        db.commit()

        alert = alert_service.create_alert(
            db,
            patient_id=patient.id,
            type="emergency",
            severity="critical",
            title="Emergency Vitals Detected",
            description="Critical vitals detected, immediate attention required",
            vitals_data=vitals.snapshot(),
            environmental_data=vitals.environmental_data,
            symptoms=list(vitals.symptoms or []),
        )
        alert_service.record_emergency(alert, source="vitals", request_id=request_id)

        await publisher.publish(EMERGENCY_ALERT, {
            "patientId": patient.id,
            "alertId": alert.id,
            "severity": "critical",
            "source": source,
        })

    await publisher.publish(VITALS_UPDATE, {
        "patientId": patient.id,
        "vitals": vitals_payload(vitals),
        "isEmergency": emergency,
    })

    logger.info(
        f"Vitals recorded for patient {patient.id}",
        extra={"patient_id": patient.id, "source": source, "is_emergency": emergency}
    )
    return vitals, emergency


def latest(db: Session, patient_id: str) -> Optional[Vitals]:
    return (
        db.query(Vitals)
        .filter(Vitals.patient_id == patient_id)
        .order_by(Vitals.timestamp.desc())
        .first()
    )


def recent(db: Session, patient_id: str, limit: int = 10) -> List[Vitals]:
    """Newest readings first."""
    return (
        db.query(Vitals)
        .filter(Vitals.patient_id == patient_id)
        .order_by(Vitals.timestamp.desc())
        .limit(limit)
        .all()
    )


def since(db: Session, patient_id: str, start: datetime) -> List[Vitals]:
    return (
        db.query(Vitals)
        .filter(Vitals.patient_id == patient_id, Vitals.timestamp >= start)
        .order_by(Vitals.timestamp.desc())
        .all()
    )


def history(
    db: Session,
    patient_id: str,
    page: int = 1,
    limit: int = 20,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> Tuple[List[Vitals], int]:
    """
    One page of a patient's readings, newest first.

    Returns:
        tuple: (readings on the page, total matching readings)
    """
    query = db.query(Vitals).filter(Vitals.patient_id == patient_id)
    if start is not None:
        query = query.filter(Vitals.timestamp >= start)
    if end is not None:
        query = query.filter(Vitals.timestamp <= end)

    total = query.count()
    items = (
        query.order_by(Vitals.timestamp.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def in_window(
    db: Session,
    start: datetime,
    end: datetime,
    patient_ids: Optional[List[str]] = None
) -> List[Vitals]:
    """All readings in [start, end], newest first, optionally for a set of patients."""
    query = db.query(Vitals).filter(Vitals.timestamp >= start, Vitals.timestamp <= end)
    if patient_ids is not None:
        query = query.filter(Vitals.patient_id.in_(patient_ids))
    return query.order_by(Vitals.timestamp.desc()).all()

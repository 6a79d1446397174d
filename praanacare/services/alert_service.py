"""
PraanaCare - Alert Service

Alert creation, listing and the status lifecycle:

    active -> acknowledged | resolved | dismissed
    acknowledged -> acknowledged | resolved
    resolved, dismissed: terminal

Re-applying the current status where the table allows it is accepted, so
two concurrent acknowledgements both succeed (last write wins).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from praanacare.config import ALERT_TRANSITIONS, ALERT_SEVERITIES, ALERT_TYPES
from praanacare.core.exceptions import NotFoundError, AlertTransitionError
from praanacare.core.logging import log_emergency, log_alert_transition
from praanacare.db.models import Alert
from praanacare.monitoring.audit_logger import audit_logger
from praanacare.monitoring.metrics import metrics_collector
from praanacare.realtime.publisher import EventPublisher, ALERT_UPDATED, ALERT_RESPONSE


def create_alert(
    db: Session,
    patient_id: str,
    type: str,
    severity: str,
    title: str,
    description: str,
    **fields
) -> Alert:
    """Store a new active alert."""
    if type not in ALERT_TYPES:
        raise ValueError(f"Unknown alert type: {type}")
    if severity not in ALERT_SEVERITIES:
        raise ValueError(f"Unknown alert severity: {severity}")

    alert = Alert(
        patient_id=patient_id,
        type=type,
        severity=severity,
        title=title,
        description=description,
        status="active",
        **fields
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)

    metrics_collector.record_alert(severity)
    return alert


def record_emergency(
    alert: Alert,
    source: str,
    risk_score: Optional[int] = None,
    request_id: Optional[str] = None
):
    """Log and audit an emergency alert that was just created."""
    log_emergency(alert.patient_id, alert.id, source, severity=alert.severity)
    audit_logger.log_emergency(
        alert_id=alert.id,
        patient_id=alert.patient_id,
        source=source,
        severity=alert.severity,
        vitals=alert.vitals_data,
        risk_score=risk_score,
        request_id=request_id,
    )


def get_alert(db: Session, alert_id: str, patient_id: Optional[str] = None) -> Alert:
    """
    Fetch an alert, optionally scoped to one patient.

    Raises:
        NotFoundError: No such alert (or it belongs to another patient)
    """
    query = db.query(Alert).filter(Alert.id == alert_id)
    if patient_id is not None:
        query = query.filter(Alert.patient_id == patient_id)
    alert = query.first()
    if alert is None:
        raise NotFoundError("Alert not found")
    return alert


def _transition(alert: Alert, target: str, actor_id: str, actor_role: str, notes: str = None):
    previous = alert.status
    if target not in ALERT_TRANSITIONS.get(previous, set()):
        raise AlertTransitionError(alert.id, previous, target)

    alert.status = target
    now = datetime.utcnow()
    if target == "acknowledged":
        alert.acknowledged_by = actor_id
        alert.acknowledged_at = now
    elif target in ("resolved", "dismissed"):
        alert.resolved_by = actor_id
        alert.resolved_at = now

    log_alert_transition(alert.id, previous, target, actor_id)
    audit_logger.log_alert_transition(alert.id, previous, target, actor_id, actor_role, notes)
    metrics_collector.record_transition(target)


def _append_action(alert: Alert, type: str, description: str, actor_id: str):
    action = {
        "type": type,
        "description": description,
        "executed": True,
        "executedAt": datetime.utcnow().isoformat(),
        "executedBy": actor_id,
    }
    alert.actions = list(alert.actions or []) + [action]


def acknowledge(db: Session, alert_id: str, patient_id: str, user_id: str) -> Alert:
    """Patient acknowledges one of their own alerts."""
    alert = get_alert(db, alert_id, patient_id=patient_id)
    _transition(alert, "acknowledged", user_id, "patient")
    db.commit()
    db.refresh(alert)
    return alert


async def approve(
    db: Session,
    alert_id: str,
    user_id: str,
    publisher: EventPublisher,
    treatment_plan: Optional[str] = None,
    notes: Optional[str] = None
) -> Alert:
    """Doctor approves treatment: resolves the alert and records a consultation."""
    alert = get_alert(db, alert_id)
    _transition(alert, "resolved", user_id, "doctor", notes)
    _append_action(alert, "consultation", treatment_plan or "Treatment approved by doctor", user_id)
    db.commit()
    db.refresh(alert)

    await publisher.publish(ALERT_UPDATED, {
        "alertId": alert.id,
        "status": alert.status,
        "patientId": alert.patient_id,
    })
    return alert


async def dismiss(
    db: Session,
    alert_id: str,
    user_id: str,
    publisher: EventPublisher,
    reason: Optional[str] = None
) -> Alert:
    alert = get_alert(db, alert_id)
    _transition(alert, "dismissed", user_id, "doctor", reason)
    db.commit()
    db.refresh(alert)

    await publisher.publish(ALERT_UPDATED, {
        "alertId": alert.id,
        "status": alert.status,
        "patientId": alert.patient_id,
    })
    return alert


async def respond(
    db: Session,
    alert_id: str,
    user_id: str,
    publisher: EventPublisher,
    action: Optional[str] = None,
    notes: Optional[str] = None
) -> Alert:
    """
    Employer response. Records a notification action; the status is unchanged.
    """
    alert = get_alert(db, alert_id)
    _append_action(alert, "notification", action or "Alert acknowledged by employer", user_id)
    alert.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(alert)

    await publisher.publish(ALERT_RESPONSE, {
        "alertId": alert.id,
        "action": action,
        "employerId": user_id,
    })
    return alert


def list_alerts(
    db: Session,
    filters: Optional[Dict[str, Any]] = None,
    page: int = 1,
    limit: int = 20
) -> Tuple[List[Alert], int]:
    """
    One page of alerts, newest first.

    Args:
        filters: Exact-match filters on patient_id, status, type, severity
        page: 1-based page number
        limit: Page size

    Returns:
        tuple: (alerts on the page, total matching alerts)
    """
    query = db.query(Alert)
    for name, value in (filters or {}).items():
        if value is not None:
            query = query.filter(getattr(Alert, name) == value)

    total = query.count()
    items = (
        query.order_by(Alert.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def active_alerts(
    db: Session,
    patient_id: Optional[str] = None,
    severities: Optional[List[str]] = None,
    since: Optional[datetime] = None,
    limit: Optional[int] = None
) -> List[Alert]:
    query = db.query(Alert).filter(Alert.status == "active")
    if patient_id is not None:
        query = query.filter(Alert.patient_id == patient_id)
    if severities:
        query = query.filter(Alert.severity.in_(severities))
    if since is not None:
        query = query.filter(Alert.created_at >= since)
    query = query.order_by(Alert.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def recent_for_patient(db: Session, patient_id: str, limit: int = 5) -> List[Alert]:
    return (
        db.query(Alert)
        .filter(Alert.patient_id == patient_id)
        .order_by(Alert.created_at.desc())
        .limit(limit)
        .all()
    )


def in_window(
    db: Session,
    start: datetime,
    end: datetime,
    patient_ids: Optional[List[str]] = None,
    status: Optional[str] = None
) -> List[Alert]:
    query = db.query(Alert).filter(Alert.created_at >= start, Alert.created_at <= end)
    if patient_ids is not None:
        query = query.filter(Alert.patient_id.in_(patient_ids))
    if status is not None:
        query = query.filter(Alert.status == status)
    return query.order_by(Alert.created_at.desc()).all()

"""
PraanaCare - Alert Lifecycle Tests

Tests for alert creation, status transitions and the action log.
"""

import asyncio

import pytest

from praanacare.core.exceptions import AlertTransitionError, NotFoundError
from praanacare.db.models import Patient, User
from praanacare.realtime.publisher import ALERT_RESPONSE, ALERT_UPDATED
from praanacare.services import alert_service

from conftest import RecordingPublisher


@pytest.fixture
def patient(db):
    user = User(
        email="worker@plant.example",
        password_hash="x",
        role="patient",
        first_name="Asha",
        last_name="Rao",
    )
    db.add(user)
    db.flush()
    profile = Patient(
        user_id=user.id,
        employee_id="EMP-9",
        department="Smelting",
        shift="day",
        work_location="Line 1",
        emergency_contact={"name": "Ravi", "phone": "555", "relationship": "spouse"},
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def alert(db, patient):
    return alert_service.create_alert(
        db, patient.id, "heat_stress", "high", "Heat stress", "Core temperature rising"
    )


class TestAlertCreation:
    """Test alert creation rules."""

    def test_new_alert_is_active(self, alert):
        assert alert.status == "active"
        assert alert.actions == []

    def test_unknown_type(self, db, patient):
        with pytest.raises(ValueError):
            alert_service.create_alert(db, patient.id, "boredom", "low", "t", "d")

    def test_unknown_severity(self, db, patient):
        with pytest.raises(ValueError):
            alert_service.create_alert(db, patient.id, "fatigue", "extreme", "t", "d")

    def test_missing_alert(self, db):
        with pytest.raises(NotFoundError):
            alert_service.get_alert(db, "missing")

    def test_other_patients_alert_hidden(self, db, alert):
        with pytest.raises(NotFoundError):
            alert_service.get_alert(db, alert.id, patient_id="someone-else")


class TestTransitions:
    """Test the alert status machine."""

    def test_acknowledge_is_idempotent(self, db, alert, patient):
        alert_service.acknowledge(db, alert.id, patient.id, "user-1")
        again = alert_service.acknowledge(db, alert.id, patient.id, "user-1")
        assert again.status == "acknowledged"
        assert again.acknowledged_by == "user-1"

    def test_approve_resolves_and_logs_action(self, db, alert):
        publisher = RecordingPublisher()
        resolved = asyncio.run(alert_service.approve(db, alert.id, "doc-1", publisher, treatment_plan="Rest"))
        assert resolved.status == "resolved"
        assert resolved.resolved_by == "doc-1"
        assert resolved.actions[-1]["type"] == "consultation"
        assert resolved.actions[-1]["description"] == "Rest"
        assert publisher.named(ALERT_UPDATED) == [
            {"alertId": alert.id, "status": "resolved", "patientId": alert.patient_id}
        ]

    def test_acknowledged_can_resolve(self, db, alert, patient):
        alert_service.acknowledge(db, alert.id, patient.id, "user-1")
        resolved = asyncio.run(alert_service.approve(db, alert.id, "doc-1", RecordingPublisher()))
        assert resolved.status == "resolved"

    def test_resolved_is_terminal(self, db, alert, patient):
        asyncio.run(alert_service.approve(db, alert.id, "doc-1", RecordingPublisher()))
        with pytest.raises(AlertTransitionError):
            alert_service.acknowledge(db, alert.id, patient.id, "user-1")

    def test_acknowledged_cannot_be_dismissed(self, db, alert, patient):
        alert_service.acknowledge(db, alert.id, patient.id, "user-1")
        with pytest.raises(AlertTransitionError):
            asyncio.run(alert_service.dismiss(db, alert.id, "doc-1", RecordingPublisher()))

    def test_dismissed_is_terminal(self, db, alert):
        asyncio.run(alert_service.dismiss(db, alert.id, "doc-1", RecordingPublisher(), reason="False alarm"))
        with pytest.raises(AlertTransitionError):
            asyncio.run(alert_service.approve(db, alert.id, "doc-1", RecordingPublisher()))

    def test_employer_response_keeps_status(self, db, alert):
        publisher = RecordingPublisher()
        updated = asyncio.run(alert_service.respond(db, alert.id, "emp-1", publisher, action="Sent home"))
        assert updated.status == "active"
        assert updated.actions[-1]["type"] == "notification"
        assert publisher.named(ALERT_RESPONSE) == [
            {"alertId": alert.id, "action": "Sent home", "employerId": "emp-1"}
        ]


class TestQueries:
    """Test alert listing helpers."""

    def test_list_filters_skip_none(self, db, alert):
        items, total = alert_service.list_alerts(db, {"status": None, "severity": "high"})
        assert total == 1
        assert items[0].id == alert.id

    def test_active_alerts_by_severity(self, db, alert, patient):
        alert_service.create_alert(db, patient.id, "emergency", "critical", "Emergency", "d")
        critical = alert_service.active_alerts(db, severities=["critical"])
        assert [a.severity for a in critical] == ["critical"]

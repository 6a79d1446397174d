"""
PraanaCare Health API - Doctor and Employer Endpoint Tests
"""

from datetime import datetime, timedelta

import pytest

from praanacare.realtime.publisher import ALERT_RESPONSE, ALERT_UPDATED


@pytest.fixture
def emergency_case(client, patient_auth, emergency_vitals):
    """(patient user, alert) after an emergency reading."""
    headers, user = patient_auth
    client.post("/api/patient/vitals", headers=headers, json=emergency_vitals)
    alert = client.get("/api/patient/alerts", headers=headers).json()["alerts"]["alerts"][0]
    return user, alert


class TestDoctorViews:
    """Test doctor dashboards and patient views."""

    def test_dashboard(self, client, doctor_auth, emergency_case):
        headers, _ = doctor_auth
        response = client.get("/api/doctor/dashboard", headers=headers)
        assert response.status_code == 200
        dashboard = response.json()["dashboard"]
        assert dashboard["statistics"] == {"totalPatients": 1, "activeAlerts": 1, "urgentCases": 1}
        assert len(dashboard["urgentAlerts"]) == 1

    def test_patient_role_forbidden(self, client, patient_auth):
        headers, _ = patient_auth
        assert client.get("/api/doctor/dashboard", headers=headers).status_code == 403

    def test_patients_with_urgency(self, client, doctor_auth, emergency_case):
        headers, _ = doctor_auth
        data = client.get("/api/doctor/patients", headers=headers).json()["data"]
        assert data["patients"][0]["urgency"] == "high"
        assert data["patients"][0]["latestVitals"]["isEmergency"] is True

        low = client.get("/api/doctor/patients?urgency=low", headers=headers).json()["data"]
        assert low["patients"] == []
        assert low["pagination"]["total"] == 1

    def test_patient_detail(self, client, doctor_auth, emergency_case):
        headers, _ = doctor_auth
        user, _ = emergency_case
        response = client.get(f"/api/doctor/patients/{user['profile']['id']}", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["vitalsHistory"]) == 1
        assert "Recent critical alerts" in body["aiSummary"]["concerns"]
        assert body["riskAssessment"]["riskScore"] == 45

    def test_unknown_patient(self, client, doctor_auth):
        headers, _ = doctor_auth
        assert client.get("/api/doctor/patients/missing", headers=headers).status_code == 404


class TestDoctorAlertActions:
    """Test approve and dismiss."""

    def test_approve(self, client, doctor_auth, emergency_case, publisher):
        headers, doctor = doctor_auth
        _, alert = emergency_case
        response = client.put(
            f"/api/doctor/alerts/{alert['id']}/approve",
            headers=headers,
            json={"treatmentPlan": "Hydrate and rest", "notes": "Review tomorrow"},
        )
        assert response.status_code == 200
        approved = response.json()["alert"]
        assert approved["status"] == "resolved"
        assert approved["resolvedBy"] == doctor["id"]
        assert approved["actions"][-1]["description"] == "Hydrate and rest"
        assert publisher.named(ALERT_UPDATED)[0]["status"] == "resolved"

    def test_approve_twice_conflicts(self, client, doctor_auth, emergency_case):
        headers, _ = doctor_auth
        _, alert = emergency_case
        client.put(f"/api/doctor/alerts/{alert['id']}/approve", headers=headers, json={})
        response = client.put(f"/api/doctor/alerts/{alert['id']}/approve", headers=headers, json={})
        assert response.status_code == 409

    def test_acknowledge_after_resolve_conflicts(self, client, patient_auth, doctor_auth, emergency_case):
        _, alert = emergency_case
        client.put(f"/api/doctor/alerts/{alert['id']}/approve", headers=doctor_auth[0], json={})
        response = client.put(f"/api/patient/alerts/{alert['id']}/acknowledge", headers=patient_auth[0])
        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_dismiss(self, client, doctor_auth, emergency_case):
        headers, _ = doctor_auth
        _, alert = emergency_case
        response = client.put(
            f"/api/doctor/alerts/{alert['id']}/dismiss", headers=headers, json={"reason": "Sensor glitch"}
        )
        assert response.status_code == 200
        assert response.json()["alert"]["status"] == "dismissed"


class TestConsultations:
    """Test consultations and the schedule."""

    def test_start_consultation_reuses_active_chat(self, client, doctor_auth, patient_auth):
        headers, _ = doctor_auth
        patient_id = patient_auth[1]["profile"]["id"]

        first = client.post("/api/doctor/consultations", headers=headers, json={
            "patientId": patient_id, "type": "follow-up", "priority": "high",
        })
        assert first.status_code == 201
        consultation = first.json()["consultation"]
        assert consultation["priority"] == "high"
        assert consultation["tags"] == ["follow-up"]

        second = client.post("/api/doctor/consultations", headers=headers, json={"patientId": patient_id})
        assert second.json()["consultation"]["id"] == consultation["id"]

        schedule = client.get("/api/doctor/schedule", headers=headers).json()["schedule"]
        assert [c["id"] for c in schedule["consultations"]] == [consultation["id"]]
        assert schedule["availability"]["monday"]["available"] is True

        utc_day = datetime.utcnow().strftime("%Y-%m-%dT00:00:00Z")
        response = client.get("/api/doctor/schedule", headers=headers, params={"date": utc_day})
        assert response.status_code == 200
        assert [c["id"] for c in response.json()["schedule"]["consultations"]] == [consultation["id"]]

    def test_unknown_patient(self, client, doctor_auth):
        headers, _ = doctor_auth
        response = client.post("/api/doctor/consultations", headers=headers, json={"patientId": "missing"})
        assert response.status_code == 404


class TestEmployerViews:
    """Test employer dashboards and analytics."""

    def test_dashboard(self, client, employer_auth, emergency_case):
        headers, _ = employer_auth
        response = client.get("/api/employer/dashboard", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["statistics"]["totalEmployees"] == 1
        assert data["statistics"]["dailyIncidents"] == 1
        # one reading at 80 minus the heavier employer penalty for one active alert
        assert data["statistics"]["healthIndex"] == 70
        assert data["departmentStats"] == [{"department": "Smelting", "count": 1}]

    def test_doctor_forbidden(self, client, doctor_auth):
        headers, _ = doctor_auth
        assert client.get("/api/employer/dashboard", headers=headers).status_code == 403

    def test_analytics(self, client, employer_auth, emergency_case):
        headers, _ = employer_auth
        response = client.get("/api/employer/analytics?period=30d", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        for key in ("trendData", "departmentBreakdown", "riskAnalysis", "predictedAbsenteeism", "roiAnalysis"):
            assert key in data

    def test_analytics_with_utc_dates(self, client, employer_auth, emergency_case):
        headers, _ = employer_auth
        start = (datetime.utcnow() - timedelta(days=2)).replace(microsecond=0)
        response = client.get("/api/employer/analytics", headers=headers, params={
            "startDate": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
        })
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["period"]["start"] == start.isoformat()
        assert len(data["trendData"]) == 3

    def test_analytics_department_filter(self, client, employer_auth, patient_payload, emergency_case):
        headers, _ = employer_auth
        client.post("/api/auth/register", json={
            **patient_payload, "email": "welder@plant.example", "employeeId": "EMP-002", "department": "Welding",
        })

        data = client.get("/api/employer/analytics?department=Smelting", headers=headers).json()["data"]
        assert [d["department"] for d in data["departmentBreakdown"]] == ["Smelting"]
        assert data["departmentBreakdown"][0]["totalAlerts"] == 1

    def test_alerts_default_to_active(self, client, employer_auth, doctor_auth, emergency_case):
        headers, _ = employer_auth
        _, alert = emergency_case
        assert len(client.get("/api/employer/alerts", headers=headers).json()["data"]["alerts"]) == 1

        client.put(f"/api/doctor/alerts/{alert['id']}/dismiss", headers=doctor_auth[0], json={})
        assert client.get("/api/employer/alerts", headers=headers).json()["data"]["alerts"] == []

    def test_respond_keeps_status(self, client, employer_auth, emergency_case, publisher):
        headers, employer = employer_auth
        _, alert = emergency_case
        response = client.put(
            f"/api/employer/alerts/{alert['id']}/respond", headers=headers, json={"action": "Sent to first aid"}
        )
        assert response.status_code == 200
        assert response.json()["alert"]["status"] == "active"
        assert publisher.named(ALERT_RESPONSE) == [
            {"alertId": alert["id"], "action": "Sent to first aid", "employerId": employer["id"]}
        ]

    def test_employees_risk_level(self, client, employer_auth, emergency_case):
        headers, _ = employer_auth
        data = client.get("/api/employer/employees", headers=headers).json()["data"]
        employee = data["employees"][0]
        # abnormal heart rate (2) plus an active critical alert (3)
        assert employee["riskLevel"] == "medium"
        assert employee["activeAlerts"][0]["severity"] == "critical"

        high = client.get("/api/employer/employees?riskLevel=high", headers=headers).json()["data"]
        assert high["employees"] == []

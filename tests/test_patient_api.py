"""
PraanaCare Health API - Patient Endpoint Tests
"""

from praanacare.monitoring.metrics import metrics_collector
from praanacare.realtime.publisher import EMERGENCY_ALERT, VITALS_UPDATE


class TestVitalsSubmission:
    """Test vitals recording and emergency escalation."""

    def test_normal_reading(self, client, patient_auth, publisher, normal_vitals):
        headers, user = patient_auth
        response = client.post("/api/patient/vitals", headers=headers, json=normal_vitals)
        assert response.status_code == 201
        data = response.json()
        assert data["isEmergency"] is False
        assert data["vitals"]["recordedBy"] == "patient"
        assert data["vitals"]["bloodPressure"] == {"systolic": 120, "diastolic": 80}

        assert publisher.named(EMERGENCY_ALERT) == []
        updates = publisher.named(VITALS_UPDATE)
        assert len(updates) == 1
        assert updates[0]["patientId"] == user["profile"]["id"]

    def test_emergency_reading_creates_alert(self, client, patient_auth, publisher, emergency_vitals):
        headers, user = patient_auth
        response = client.post("/api/patient/vitals", headers=headers, json=emergency_vitals)
        assert response.status_code == 201
        assert response.json()["isEmergency"] is True

        alerts = client.get("/api/patient/alerts", headers=headers).json()["alerts"]["alerts"]
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert["type"] == "emergency"
        assert alert["severity"] == "critical"
        assert alert["status"] == "active"
        assert alert["vitalsData"]["heartRate"] == 130

        emergencies = publisher.named(EMERGENCY_ALERT)
        assert emergencies == [{
            "patientId": user["profile"]["id"],
            "alertId": alert["id"],
            "severity": "critical",
            "source": "patient",
        }]
        assert metrics_collector.get_metrics()["emergencies_detected"] == 1

    def test_out_of_range_rejected(self, client, patient_auth, normal_vitals):
        headers, _ = patient_auth
        response = client.post("/api/patient/vitals", headers=headers, json={**normal_vitals, "heartRate": 300})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "heartRate"

    def test_missing_field_rejected(self, client, patient_auth, normal_vitals):
        headers, _ = patient_auth
        payload = dict(normal_vitals)
        del payload["respiratoryRate"]
        response = client.post("/api/patient/vitals", headers=headers, json=payload)
        assert response.status_code == 400

    def test_other_roles_forbidden(self, client, doctor_auth, normal_vitals):
        headers, _ = doctor_auth
        response = client.post("/api/patient/vitals", headers=headers, json=normal_vitals)
        assert response.status_code == 403

    def test_history_pagination(self, client, patient_auth, normal_vitals):
        headers, _ = patient_auth
        for _ in range(3):
            client.post("/api/patient/vitals", headers=headers, json=normal_vitals)

        history = client.get("/api/patient/vitals/history?page=1&limit=2", headers=headers).json()["history"]
        assert len(history["vitals"]) == 2
        assert history["pagination"] == {"current": 1, "pages": 2, "total": 3}

    def test_offset_timestamp_stored_as_utc(self, client, patient_auth, normal_vitals):
        headers, _ = patient_auth
        response = client.post("/api/patient/vitals", headers=headers, json={
            **normal_vitals, "timestamp": "2026-10-10T05:00:00+05:30",
        })
        assert response.status_code == 201
        assert response.json()["vitals"]["timestamp"] == "2026-10-09T23:30:00"

    def test_history_accepts_utc_dates(self, client, patient_auth, normal_vitals):
        headers, _ = patient_auth
        client.post("/api/patient/vitals", headers=headers, json={**normal_vitals, "timestamp": "2026-10-09T23:30:00Z"})
        client.post("/api/patient/vitals", headers=headers, json={**normal_vitals, "timestamp": "2026-10-12T08:00:00Z"})

        response = client.get("/api/patient/vitals/history", headers=headers, params={
            "startDate": "2026-10-09T00:00:00Z", "endDate": "2026-10-10T00:00:00Z",
        })
        assert response.status_code == 200
        history = response.json()["history"]
        assert [v["timestamp"] for v in history["vitals"]] == ["2026-10-09T23:30:00"]


class TestDashboard:
    """Test the patient dashboard."""

    def test_empty_dashboard(self, client, patient_auth):
        headers, _ = patient_auth
        dashboard = client.get("/api/patient/dashboard", headers=headers).json()["dashboard"]
        assert dashboard["latestVitals"] is None
        assert dashboard["healthIndex"] == 100
        assert dashboard["counts"] == {"activeAlerts": 0, "activeChats": 0, "vitalsThisWeek": 0}

    def test_dashboard_is_repeatable(self, client, patient_auth, emergency_vitals):
        headers, _ = patient_auth
        client.post("/api/patient/vitals", headers=headers, json=emergency_vitals)

        first = client.get("/api/patient/dashboard", headers=headers).json()["dashboard"]
        second = client.get("/api/patient/dashboard", headers=headers).json()["dashboard"]
        assert first["counts"] == second["counts"]
        assert first["healthIndex"] == second["healthIndex"]
        assert first["counts"]["activeAlerts"] == 1
        # one reading at 80 (heart rate penalty) minus one active alert
        assert first["healthIndex"] == 75


class TestAlerts:
    """Test alert acknowledgement."""

    def _emergency_alert(self, client, headers, emergency_vitals):
        client.post("/api/patient/vitals", headers=headers, json=emergency_vitals)
        return client.get("/api/patient/alerts", headers=headers).json()["alerts"]["alerts"][0]

    def test_acknowledge(self, client, patient_auth, emergency_vitals):
        headers, user = patient_auth
        alert = self._emergency_alert(client, headers, emergency_vitals)

        response = client.put(f"/api/patient/alerts/{alert['id']}/acknowledge", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["acknowledged"] is True
        assert body["alert"]["status"] == "acknowledged"
        assert body["alert"]["acknowledgedBy"] == user["id"]

    def test_acknowledge_twice(self, client, patient_auth, emergency_vitals):
        """Repeated acknowledgements all succeed and leave one status."""
        headers, _ = patient_auth
        alert = self._emergency_alert(client, headers, emergency_vitals)

        for _ in range(2):
            response = client.put(f"/api/patient/alerts/{alert['id']}/acknowledge", headers=headers)
            assert response.status_code == 200
            assert response.json()["alert"]["status"] == "acknowledged"

    def test_unknown_alert(self, client, patient_auth):
        headers, _ = patient_auth
        response = client.put("/api/patient/alerts/missing/acknowledge", headers=headers)
        assert response.status_code == 404

    def test_status_filter(self, client, patient_auth, emergency_vitals):
        headers, _ = patient_auth
        self._emergency_alert(client, headers, emergency_vitals)
        resolved = client.get("/api/patient/alerts?status=resolved", headers=headers).json()["alerts"]
        assert resolved["alerts"] == []


class TestChats:
    """Test patient chats."""

    def test_start_and_list(self, client, patient_auth):
        headers, _ = patient_auth
        response = client.post("/api/patient/chats", headers=headers, json={"initialMessage": "Hello"})
        assert response.status_code == 201
        chat = response.json()["chat"]
        assert chat["status"] == "active"
        assert chat["messages"][0]["content"] == "Hello"

        chats = client.get("/api/patient/chats", headers=headers).json()["chats"]
        assert [c["id"] for c in chats] == [chat["id"]]

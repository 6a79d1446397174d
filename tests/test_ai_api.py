"""
PraanaCare Health API - Assistant Endpoint Tests
"""

import pytest

from praanacare.realtime.publisher import EMERGENCY_ALERT

from conftest import StubGenerator


class TestChat:
    """Test assistant chat turns."""

    def test_routine_message(self, client, patient_auth, publisher):
        headers, _ = patient_auth
        response = client.post("/api/ai/chat", headers=headers, json={"message": "All good today"})
        assert response.status_code == 200
        chat = response.json()["chat"]
        assert [m["type"] for m in chat["messages"]] == ["user", "ai"]
        assert chat["messages"][1]["metadata"]["riskScore"] == 20
        assert chat["messages"][1]["metadata"]["confidence"] == 60
        assert publisher.named(EMERGENCY_ALERT) == []

    def test_messages_append_to_active_chat(self, client, patient_auth):
        headers, _ = patient_auth
        first = client.post("/api/ai/chat", headers=headers, json={"message": "Hello"}).json()["chat"]
        second = client.post("/api/ai/chat", headers=headers, json={
            "message": "I feel tired", "chatId": first["id"],
        }).json()["chat"]
        assert second["id"] == first["id"]
        assert [m["type"] for m in second["messages"]] == ["user", "ai", "user", "ai", "action"]
        assert second["messages"][-1]["action"]["type"] == "consultation"

    def test_emergency_message_raises_alert(self, client, patient_auth, publisher):
        headers, user = patient_auth
        response = client.post("/api/ai/chat", headers=headers, json={"message": "I have chest pain"})
        assert response.status_code == 200

        alerts = client.get("/api/patient/alerts", headers=headers).json()["alerts"]["alerts"]
        assert len(alerts) == 1
        assert alerts[0]["title"] == "AI Detected Emergency Condition"
        assert alerts[0]["aiAnalysis"]["riskScore"] == 95

        events = publisher.named(EMERGENCY_ALERT)
        assert events[0]["patientId"] == user["profile"]["id"]
        assert events[0]["aiDetected"] is True

    def test_blank_message_rejected(self, client, patient_auth):
        headers, _ = patient_auth
        response = client.post("/api/ai/chat", headers=headers, json={"message": "   "})
        assert response.status_code == 400

    def test_doctor_needs_patient_id(self, client, doctor_auth):
        headers, _ = doctor_auth
        response = client.post("/api/ai/chat", headers=headers, json={"message": "Status?"})
        assert response.status_code == 400

    def test_doctor_chats_about_patient(self, client, doctor_auth, patient_auth):
        headers, _ = doctor_auth
        patient_id = patient_auth[1]["profile"]["id"]
        response = client.post("/api/ai/chat", headers=headers, json={"message": "Status?", "patientId": patient_id})
        assert response.status_code == 200
        assert response.json()["chat"]["patientId"] == patient_id

    def test_patient_cannot_read_other_chat(self, client, patient_auth, patient_payload):
        headers, _ = patient_auth
        chat = client.post("/api/ai/chat", headers=headers, json={"message": "Hello"}).json()["chat"]

        other = client.post("/api/auth/register", json={
            **patient_payload, "email": "second@plant.example", "employeeId": "EMP-002",
        }).json()["token"]
        response = client.get(f"/api/ai/chat/{chat['id']}", headers={"Authorization": f"Bearer {other}"})
        assert response.status_code == 403

    def test_unknown_chat(self, client, patient_auth):
        headers, _ = patient_auth
        assert client.get("/api/ai/chat/missing", headers=headers).status_code == 404


class TestRemoteAssistant:
    """Test chat turns with a configured text generator."""

    @pytest.fixture
    def generator(self):
        return StubGenerator(reply="Please rest in the shade.")

    def test_remote_reply_used(self, client, patient_auth, generator):
        headers, _ = patient_auth
        chat = client.post("/api/ai/chat", headers=headers, json={"message": "I am thirsty"}).json()["chat"]
        reply = chat["messages"][1]
        assert reply["content"] == "Please rest in the shade."
        assert reply["metadata"]["confidence"] == 85
        assert reply["metadata"]["riskScore"] == 50
        assert "Praana AI" in generator.calls[0][0]


class TestAnalysis:
    """Test vitals analysis and employer recommendations."""

    def test_analyze_vitals(self, client, patient_auth):
        headers, _ = patient_auth
        response = client.post("/api/ai/analyze-vitals", headers=headers, json={
            "vitalsData": {
                "heartRate": 110,
                "bloodPressure": {"systolic": 150, "diastolic": 95},
                "temperature": 98.6,
                "oxygenSaturation": 97,
            },
        })
        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["riskScore"] == 45
        assert analysis["severity"] == "medium"
        assert "High blood pressure" in analysis["concerns"]

    def test_analyze_without_patient(self, client, doctor_auth):
        headers, _ = doctor_auth
        response = client.post("/api/ai/analyze-vitals", headers=headers, json={
            "vitalsData": {
                "heartRate": 80,
                "bloodPressure": {"systolic": 120, "diastolic": 80},
                "temperature": 98.6,
                "oxygenSaturation": 97,
            },
        })
        assert response.status_code == 404

    def test_recommendations_for_employers_only(self, client, employer_auth, patient_auth):
        response = client.post("/api/ai/generate-recommendations", headers=employer_auth[0])
        assert response.status_code == 200
        assert isinstance(response.json()["recommendations"], list)

        assert client.post("/api/ai/generate-recommendations", headers=patient_auth[0]).status_code == 403

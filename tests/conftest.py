"""Test configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Settings are cached on first import, so configure the environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_AUDIT_LOGGING", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("OPENAI_API_KEY", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from praanacare.api.dependencies import get_text_generator  # noqa: E402
from praanacare.db.base import get_db, init_db  # noqa: E402
from praanacare.main import app  # noqa: E402
from praanacare.monitoring.metrics import metrics_collector  # noqa: E402
from praanacare.realtime.publisher import get_publisher  # noqa: E402


class RecordingPublisher:
    """Event publisher that keeps every event instead of sending it."""

    def __init__(self):
        self.events = []

    async def publish(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]


class StubGenerator:
    """Text generator returning a fixed reply, or failing on demand."""

    def __init__(self, reply="Stay hydrated and rest.", fail=False):
        self.reply = reply
        self.fail = fail
        self.calls = []

    def generate(self, system_prompt, message):
        self.calls.append((system_prompt, message))
        if self.fail:
            raise RuntimeError("upstream unavailable")
        return self.reply


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def generator():
    """No remote generator: the assistant answers with canned replies."""
    return None


@pytest.fixture
def client(session_factory, publisher, generator):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_text_generator] = lambda: generator
    metrics_collector.reset_metrics()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def patient_payload():
    """Sample patient registration payload."""
    return {
        "email": "Asha.Rao@Plant.example",
        "password": "secret1",
        "firstName": "Asha",
        "lastName": "Rao",
        "role": "patient",
        "employeeId": "EMP-001",
        "department": "Smelting",
        "shift": "day",
        "workLocation": "Line 3",
        "emergencyContact": {"name": "Ravi", "phone": "555-0100", "relationship": "spouse"},
    }


@pytest.fixture
def doctor_payload():
    return {
        "email": "dr.mehta@clinic.example",
        "password": "secret1",
        "firstName": "Kiran",
        "lastName": "Mehta",
        "role": "doctor",
        "licenseNumber": "LIC-42",
        "specialization": "Occupational Medicine",
        "department": "Clinic",
        "experience": 12,
        "consultationFee": 50,
    }


@pytest.fixture
def employer_payload():
    return {
        "email": "hr@plant.example",
        "password": "secret1",
        "firstName": "Lena",
        "lastName": "Park",
        "role": "employer",
        "companyName": "Acme Foundry",
        "industry": "Manufacturing",
        "companySize": "medium",
        "address": {"city": "Pune"},
        "contactInfo": {"email": "hr@plant.example"},
    }


def _register(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    token = response.json()["token"]
    headers = {"Authorization": f"Bearer {token}"}
    me = client.get("/api/auth/me", headers=headers).json()["user"]
    return headers, me


@pytest.fixture
def patient_auth(client, patient_payload):
    """(headers, user) for a registered patient."""
    return _register(client, patient_payload)


@pytest.fixture
def doctor_auth(client, doctor_payload):
    return _register(client, doctor_payload)


@pytest.fixture
def employer_auth(client, employer_payload):
    return _register(client, employer_payload)


@pytest.fixture
def normal_vitals():
    """A reading well inside every limit."""
    return {
        "heartRate": 72,
        "bloodPressure": {"systolic": 120, "diastolic": 80},
        "temperature": 98.6,
        "oxygenSaturation": 98,
        "respiratoryRate": 16,
    }


@pytest.fixture
def emergency_vitals(normal_vitals):
    """Heart rate above the emergency threshold."""
    return {**normal_vitals, "heartRate": 130}

"""
PraanaCare - ORM Models

Covers every persisted entity:
  - User (identity) and the three role profiles: Patient, Doctor, Employer
  - Vitals (timestamped physiological + environmental reading)
  - Alert (derived, stateful risk event)
  - Chat (append-only assistant / doctor conversation)

Embedded sub-documents (contacts, addresses, action logs, messages) are JSON columns.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text,
    DateTime, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship

from praanacare.db.base import Base
from praanacare.services.scoring import VitalsReading
from praanacare.config import DEFAULT_DOCTOR_AVAILABILITY, DEFAULT_EMPLOYER_SETTINGS


def _uuid():
    return str(uuid.uuid4())


def _copy(default):
    return lambda: {key: dict(value) if isinstance(value, dict) else value for key, value in default.items()}


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------

class User(Base):
    """
    Platform identity - a Patient (worker), Doctor or Employer.
    """
    __tablename__ = "users"

    id              = Column(String(36), primary_key=True, default=_uuid)
    email           = Column(String(255), unique=True, nullable=False, index=True)
    password_hash   = Column(String(255), nullable=False)
    role            = Column(String(20), nullable=False)             # patient/doctor/employer
    first_name      = Column(String(100), nullable=False)
    last_name       = Column(String(100), nullable=False)
    phone           = Column(String(30), nullable=True)
    is_active       = Column(Boolean, default=True, nullable=False)
    last_login      = Column(DateTime, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient_profile  = relationship("Patient", back_populates="user", uselist=False)
    doctor_profile   = relationship("Doctor", back_populates="user", uselist=False)
    employer_profile = relationship("Employer", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def profile(self):
        return {
            "patient": self.patient_profile,
            "doctor": self.doctor_profile,
            "employer": self.employer_profile,
        }.get(self.role)


# ---------------------------------------------------------------------------
# Role profiles
# ---------------------------------------------------------------------------

class Patient(Base):
    """Worker health profile with employment metadata."""
    __tablename__ = "patients"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    user_id             = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    employee_id         = Column(String(100), unique=True, nullable=False)
    department          = Column(String(100), nullable=False, index=True)
    shift               = Column(String(20), nullable=False)              # day/night/rotating
    work_location       = Column(String(255), nullable=False)
    supervisor_id       = Column(String(36), nullable=True)
    emergency_contact   = Column(JSON, nullable=False)                     # {name, phone, relationship}
    medical_history     = Column(JSON, default=list)
    allergies           = Column(JSON, default=list)
    current_medications = Column(JSON, default=list)
    insurance_info      = Column(JSON, nullable=True)                      # {provider, policyNumber}
    is_active           = Column(Boolean, default=True, nullable=False)
    created_at          = Column(DateTime, default=datetime.utcnow)
    updated_at          = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user    = relationship("User", back_populates="patient_profile")
    vitals  = relationship("Vitals", back_populates="patient", order_by="Vitals.timestamp.desc()")
    alerts  = relationship("Alert", back_populates="patient")
    chats   = relationship("Chat", back_populates="patient")


class Doctor(Base):
    __tablename__ = "doctors"

    id                   = Column(String(36), primary_key=True, default=_uuid)
    user_id              = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    license_number       = Column(String(100), unique=True, nullable=False)
    specialization       = Column(String(255), nullable=False)
    department           = Column(String(100), nullable=False)
    qualifications       = Column(JSON, default=list)
    experience           = Column(Integer, nullable=False)                  # years
    consultation_fee     = Column(Float, nullable=False)
    availability         = Column(JSON, default=_copy(DEFAULT_DOCTOR_AVAILABILITY))
    max_patients_per_day = Column(Integer, default=20)
    current_patients     = Column(Integer, default=0)
    rating               = Column(Float, default=0.0)
    total_consultations  = Column(Integer, default=0)
    is_active            = Column(Boolean, default=True, nullable=False)
    created_at           = Column(DateTime, default=datetime.utcnow)
    updated_at           = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="doctor_profile")


class Employer(Base):
    __tablename__ = "employers"

    id               = Column(String(36), primary_key=True, default=_uuid)
    user_id          = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    company_name     = Column(String(255), nullable=False)
    industry         = Column(String(100), nullable=False)
    company_size     = Column(String(20), nullable=False)                   # small/medium/large/enterprise
    address          = Column(JSON, nullable=False)
    contact_info     = Column(JSON, nullable=False)
    subscription     = Column(JSON, nullable=False)                          # {plan, startDate, endDate, isActive}
    settings         = Column(JSON, default=_copy(DEFAULT_EMPLOYER_SETTINGS))
    total_employees  = Column(Integer, default=0)
    active_employees = Column(Integer, default=0)
    is_active        = Column(Boolean, default=True, nullable=False)
    created_at       = Column(DateTime, default=datetime.utcnow)
    updated_at       = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="employer_profile")


# ---------------------------------------------------------------------------
# Vitals
# ---------------------------------------------------------------------------

class Vitals(Base):
    """
    A single physiological + environmental measurement for a patient.
    recorded_by: patient | device | doctor | ai
    """
    __tablename__ = "vitals"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    patient_id          = Column(String(36), ForeignKey("patients.id"), nullable=False)
    timestamp           = Column(DateTime, default=datetime.utcnow, nullable=False)

    heart_rate          = Column(Float, nullable=False)
    systolic            = Column(Float, nullable=False)
    diastolic           = Column(Float, nullable=False)
    temperature         = Column(Float, nullable=False)                  # °F
    oxygen_saturation   = Column(Float, nullable=False)                  # %
    respiratory_rate    = Column(Float, nullable=False)
    blood_glucose       = Column(Float, nullable=True)
    weight              = Column(Float, nullable=True)                   # kg
    height              = Column(Float, nullable=True)                   # cm
    bmi                 = Column(Float, nullable=True)

    ambient_temperature = Column(Float, nullable=True)                   # °C
    humidity            = Column(Float, nullable=True)
    air_quality         = Column(Float, nullable=True)                   # AQI
    noise_level         = Column(Float, nullable=True)                   # dB

    symptoms            = Column(JSON, default=list)
    notes               = Column(Text, nullable=True)
    recorded_by         = Column(String(20), nullable=False)
    is_emergency        = Column(Boolean, default=False, nullable=False)
    created_at          = Column(DateTime, default=datetime.utcnow)
    updated_at          = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("Patient", back_populates="vitals")

    __table_args__ = (
        Index("ix_vitals_patient_timestamp", "patient_id", "timestamp"),
        Index("ix_vitals_is_emergency", "is_emergency"),
    )

    @property
    def blood_pressure(self) -> dict:
        return {"systolic": self.systolic, "diastolic": self.diastolic}

    @property
    def environmental_data(self) -> dict:
        return {
            "ambientTemperature": self.ambient_temperature,
            "humidity": self.humidity,
            "airQuality": self.air_quality,
            "noiseLevel": self.noise_level,
        }

    def reading(self) -> VitalsReading:
        return VitalsReading(
            heart_rate=self.heart_rate,
            systolic=self.systolic,
            diastolic=self.diastolic,
            temperature=self.temperature,
            oxygen_saturation=self.oxygen_saturation,
        )

    def snapshot(self) -> dict:
        """Vitals subset embedded into an alert."""
        return {
            "heartRate": self.heart_rate,
            "bloodPressure": self.blood_pressure,
            "temperature": self.temperature,
            "oxygenSaturation": self.oxygen_saturation,
        }


# ---------------------------------------------------------------------------
# Alert
# ---------------------------------------------------------------------------

class Alert(Base):
    """
    Derived health-risk event. Status changes only through AlertService.
    """
    __tablename__ = "alerts"

    id                 = Column(String(36), primary_key=True, default=_uuid)
    patient_id         = Column(String(36), ForeignKey("patients.id"), nullable=False)
    doctor_id          = Column(String(36), ForeignKey("doctors.id"), nullable=True)
    employer_id        = Column(String(36), ForeignKey("employers.id"), nullable=True)
    type               = Column(String(30), nullable=False)
    severity           = Column(String(20), nullable=False)
    title              = Column(String(255), nullable=False)
    description        = Column(Text, nullable=False)
    vitals_data        = Column(JSON, nullable=True)
    environmental_data = Column(JSON, nullable=True)
    symptoms           = Column(JSON, default=list)
    ai_analysis        = Column(JSON, nullable=True)                    # {riskScore, recommendations, confidence}
    status             = Column(String(20), default="active", nullable=False)
    acknowledged_by    = Column(String(36), ForeignKey("users.id"), nullable=True)
    acknowledged_at    = Column(DateTime, nullable=True)
    resolved_by        = Column(String(36), ForeignKey("users.id"), nullable=True)
    resolved_at        = Column(DateTime, nullable=True)
    actions            = Column(JSON, default=list)
    notifications      = Column(JSON, default=list)
    created_at         = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at         = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("Patient", back_populates="alerts")

    __table_args__ = (
        Index("ix_alerts_patient_status", "patient_id", "status"),
        Index("ix_alerts_type_severity", "type", "severity"),
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class Chat(Base):
    """
    Conversation thread. `messages` only ever grows.
    """
    __tablename__ = "chats"

    id          = Column(String(36), primary_key=True, default=_uuid)
    patient_id  = Column(String(36), ForeignKey("patients.id"), nullable=False)
    doctor_id   = Column(String(36), ForeignKey("doctors.id"), nullable=True)
    messages    = Column(JSON, default=list)
    status      = Column(String(20), default="active", nullable=False)   # active/closed/escalated
    priority    = Column(String(20), default="medium", nullable=False)   # low/medium/high/urgent
    tags        = Column(JSON, default=list)
    summary     = Column(Text, nullable=True)
    created_at  = Column(DateTime, default=datetime.utcnow)
    updated_at  = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("Patient", back_populates="chats")

    __table_args__ = (
        Index("ix_chats_patient_status", "patient_id", "status"),
    )

    def append_message(self, message: dict):
        # Reassign so the JSON column is flagged dirty.
        self.messages = list(self.messages or []) + [message]
        self.updated_at = datetime.utcnow()

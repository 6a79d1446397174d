"""
PraanaCare Health API - API Schemas

Pydantic models for request/response validation and documentation.
Payloads are camelCase on the wire and snake_case in Python.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from praanacare.core.security import sanitize_input
from praanacare.utils.helpers import to_naive_utc


class CamelModel(BaseModel):
    """Base for every API model: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    EMPLOYER = "employer"


class Shift(str, Enum):
    DAY = "day"
    NIGHT = "night"
    ROTATING = "rotating"


class CompanySize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ChatPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class EmergencyContact(CamelModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    relationship: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    """
    Registration payload. Role-specific profile fields are required for
    the chosen role and ignored otherwise.

    Example:
        {
            "email": "worker@plant.example",
            "password": "secret1",
            "firstName": "Asha",
            "lastName": "Rao",
            "role": "patient",
            "employeeId": "EMP-001",
            "department": "Smelting",
            "shift": "day",
            "workLocation": "Line 3",
            "emergencyContact": {"name": "Ravi", "phone": "555-0100", "relationship": "spouse"}
        }
    """
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: Role
    phone: Optional[str] = None

    # patient
    employee_id: Optional[str] = None
    department: Optional[str] = None
    shift: Optional[Shift] = None
    work_location: Optional[str] = None
    supervisor_id: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    medical_history: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)

    # doctor
    license_number: Optional[str] = None
    specialization: Optional[str] = None
    qualifications: List[str] = Field(default_factory=list)
    experience: Optional[int] = Field(default=None, ge=0)
    consultation_fee: Optional[float] = Field(default=None, ge=0)

    # employer
    company_name: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    address: Optional[Dict[str, Any]] = None
    contact_info: Optional[Dict[str, Any]] = None
    subscription: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v

    @model_validator(mode="after")
    def check_profile_fields(self):
        required = {
            Role.PATIENT: ["employee_id", "department", "shift", "work_location", "emergency_contact"],
            Role.DOCTOR: ["license_number", "specialization", "department", "experience", "consultation_fee"],
            Role.EMPLOYER: ["company_name", "industry", "company_size", "address", "contact_info"],
        }[self.role]
        missing = [to_camel(name) for name in required if getattr(self, name) in (None, "")]
        if missing:
            raise ValueError(f"Missing {self.role.value} profile fields: {', '.join(missing)}")
        return self


class LoginRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ProfileUpdate(CamelModel):
    """Partial update of the user record and the role profile."""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = None
    profile: Dict[str, Any] = Field(default_factory=dict)


class ProfileFieldsUpdate(CamelModel):
    """
    Base for the role profile patches. Unknown keys are rejected, and a
    field declared without Optional may be omitted but never set to null.
    """
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> Dict[str, Any]:
        """Column values for the keys the client actually sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class PatientProfileUpdate(ProfileFieldsUpdate):
    department: str = Field(default=None, min_length=1, max_length=100)
    shift: Shift = None
    work_location: str = Field(default=None, min_length=1, max_length=255)
    supervisor_id: Optional[str] = None
    emergency_contact: EmergencyContact = None
    medical_history: List[str] = None
    allergies: List[str] = None
    current_medications: List[str] = None
    insurance_info: Optional[Dict[str, Any]] = None


class DoctorProfileUpdate(ProfileFieldsUpdate):
    specialization: str = Field(default=None, min_length=1, max_length=255)
    department: str = Field(default=None, min_length=1, max_length=100)
    qualifications: List[str] = None
    experience: int = Field(default=None, ge=0)
    consultation_fee: float = Field(default=None, ge=0)
    availability: Dict[str, Any] = None
    max_patients_per_day: int = Field(default=None, ge=1)


class EmployerProfileUpdate(ProfileFieldsUpdate):
    company_name: str = Field(default=None, min_length=1, max_length=255)
    industry: str = Field(default=None, min_length=1, max_length=100)
    company_size: CompanySize = None
    address: Dict[str, Any] = None
    contact_info: Dict[str, Any] = None
    settings: Dict[str, Any] = None


PROFILE_UPDATE_SCHEMAS = {
    "patient": PatientProfileUpdate,
    "doctor": DoctorProfileUpdate,
    "employer": EmployerProfileUpdate,
}


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserOut(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    phone: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class PatientOut(CamelModel):
    id: str
    user_id: str
    employee_id: str
    department: str
    shift: str
    work_location: str
    supervisor_id: Optional[str] = None
    emergency_contact: Dict[str, Any]
    medical_history: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    insurance_info: Optional[Dict[str, Any]] = None
    is_active: bool = True
    user: Optional[UserOut] = None


class DoctorOut(CamelModel):
    id: str
    user_id: str
    license_number: str
    specialization: str
    department: str
    qualifications: List[str] = Field(default_factory=list)
    experience: int
    consultation_fee: float
    availability: Dict[str, Any]
    max_patients_per_day: int
    current_patients: int
    rating: float
    total_consultations: int
    is_active: bool = True


class EmployerOut(CamelModel):
    id: str
    user_id: str
    company_name: str
    industry: str
    company_size: str
    address: Dict[str, Any]
    contact_info: Dict[str, Any]
    subscription: Dict[str, Any]
    settings: Dict[str, Any]
    total_employees: int
    active_employees: int
    is_active: bool = True


# ---------------------------------------------------------------------------
# Vitals
# ---------------------------------------------------------------------------

class BloodPressure(CamelModel):
    systolic: float = Field(..., ge=60, le=250, description="Systolic pressure (mmHg)")
    diastolic: float = Field(..., ge=30, le=150, description="Diastolic pressure (mmHg)")


class EnvironmentalData(CamelModel):
    ambient_temperature: Optional[float] = Field(default=None, description="Ambient temperature (°C)")
    humidity: Optional[float] = Field(default=None, ge=0, le=100)
    air_quality: Optional[float] = Field(default=None, ge=0, le=500, description="AQI")
    noise_level: Optional[float] = Field(default=None, ge=0, le=150, description="dB")


class VitalsCreate(CamelModel):
    """
    A reading submitted by a patient or a device. Out-of-range values are
    rejected, never clamped.
    """
    heart_rate: float = Field(..., ge=30, le=250)
    blood_pressure: BloodPressure
    temperature: float = Field(..., ge=90, le=110, description="Body temperature (°F)")
    oxygen_saturation: float = Field(..., ge=70, le=100)
    respiratory_rate: float = Field(..., ge=8, le=40)
    blood_glucose: Optional[float] = Field(default=None, ge=50, le=500)
    weight: Optional[float] = Field(default=None, ge=30, le=300, description="kg")
    height: Optional[float] = Field(default=None, ge=100, le=250, description="cm")
    bmi: Optional[float] = Field(default=None, ge=10, le=60)
    environmental_data: Optional[EnvironmentalData] = None
    symptoms: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)
    timestamp: Optional[datetime] = None

    @field_validator("symptoms")
    @classmethod
    def clean_symptoms(cls, v):
        return [s.strip() for s in v if s and s.strip()]

    @field_validator("timestamp")
    @classmethod
    def timestamp_to_utc(cls, v):
        return to_naive_utc(v)

    def to_record(self) -> Dict[str, Any]:
        """Flat column values for the vitals table."""
        environment = self.environmental_data or EnvironmentalData()
        return {
            "heart_rate": self.heart_rate,
            "systolic": self.blood_pressure.systolic,
            "diastolic": self.blood_pressure.diastolic,
            "temperature": self.temperature,
            "oxygen_saturation": self.oxygen_saturation,
            "respiratory_rate": self.respiratory_rate,
            "blood_glucose": self.blood_glucose,
            "weight": self.weight,
            "height": self.height,
            "bmi": self.bmi,
            "ambient_temperature": environment.ambient_temperature,
            "humidity": environment.humidity,
            "air_quality": environment.air_quality,
            "noise_level": environment.noise_level,
            "symptoms": self.symptoms,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }


class DeviceVitalsCreate(VitalsCreate):
    patient_id: str = Field(..., min_length=1)


class VitalsOut(CamelModel):
    id: str
    patient_id: str
    timestamp: datetime
    heart_rate: float
    blood_pressure: BloodPressure
    temperature: float
    oxygen_saturation: float
    respiratory_rate: float
    blood_glucose: Optional[float] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    bmi: Optional[float] = None
    environmental_data: EnvironmentalData
    symptoms: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    recorded_by: str
    is_emergency: bool


class VitalsSnapshot(CamelModel):
    """The subset of a reading used for analysis requests."""
    heart_rate: float = Field(..., ge=30, le=250)
    blood_pressure: BloodPressure
    temperature: float = Field(..., ge=90, le=110)
    oxygen_saturation: float = Field(..., ge=70, le=100)


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

class AlertOut(CamelModel):
    id: str
    patient_id: str
    doctor_id: Optional[str] = None
    employer_id: Optional[str] = None
    type: str
    severity: Severity
    title: str
    description: str
    vitals_data: Optional[Dict[str, Any]] = None
    environmental_data: Optional[Dict[str, Any]] = None
    symptoms: List[str] = Field(default_factory=list)
    ai_analysis: Optional[Dict[str, Any]] = None
    status: AlertStatus
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    notifications: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None


class ApproveRequest(CamelModel):
    treatment_plan: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class DismissRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class RespondRequest(CamelModel):
    action: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------

class ChatOut(CamelModel):
    id: str
    patient_id: str
    doctor_id: Optional[str] = None
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    status: str
    priority: str
    tags: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ChatCreate(CamelModel):
    initial_message: Optional[str] = Field(default=None, max_length=5000)


class ChatMessageRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=5000)
    chat_id: Optional[str] = None
    patient_id: Optional[str] = None

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        v = sanitize_input(v)
        if not v:
            raise ValueError("Message is required")
        return v


class ConsultationCreate(CamelModel):
    patient_id: str = Field(..., min_length=1)
    type: Optional[str] = None
    priority: ChatPriority = ChatPriority.MEDIUM


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class AnalyzeVitalsRequest(CamelModel):
    vitals_data: VitalsSnapshot
    patient_id: Optional[str] = None


class RiskAssessmentRequest(CamelModel):
    patient_id: str = Field(..., min_length=1)
    vitals_data: Optional[VitalsSnapshot] = None
    environmental_data: Optional[EnvironmentalData] = None


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error response schema."""
    success: bool = False
    error: str
    errors: Optional[List[ErrorDetail]] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    uptime_seconds: float
    assistant_configured: bool
    timestamp: datetime

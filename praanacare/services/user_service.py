"""
PraanaCare - User Service

Registration, credential checks and profile maintenance. Each user gets
exactly one profile record matching their role.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from praanacare.core.exceptions import DuplicateRecordError, NotFoundError
from praanacare.core.logging import logger
from praanacare.core.security import hash_password, verify_password
from praanacare.db.models import User, Patient, Doctor, Employer

PROFILE_MODELS = {
    "patient": Patient,
    "doctor": Doctor,
    "employer": Employer,
}

# Columns a user may change on their own profile
EDITABLE_PROFILE_FIELDS = {
    "patient": {
        "department", "shift", "work_location", "supervisor_id", "emergency_contact",
        "medical_history", "allergies", "current_medications", "insurance_info",
    },
    "doctor": {
        "specialization", "department", "qualifications", "experience",
        "consultation_fee", "availability", "max_patients_per_day",
    },
    "employer": {
        "company_name", "industry", "company_size", "address", "contact_info", "settings",
    },
}


def _patient_profile(user: User, data: Dict[str, Any]) -> Patient:
    return Patient(
        user_id=user.id,
        employee_id=data["employee_id"],
        department=data["department"],
        shift=data["shift"],
        work_location=data["work_location"],
        supervisor_id=data.get("supervisor_id"),
        emergency_contact=data["emergency_contact"],
        medical_history=data.get("medical_history") or [],
        allergies=data.get("allergies") or [],
        current_medications=data.get("current_medications") or [],
    )


def _doctor_profile(user: User, data: Dict[str, Any]) -> Doctor:
    return Doctor(
        user_id=user.id,
        license_number=data["license_number"],
        specialization=data["specialization"],
        department=data["department"],
        qualifications=data.get("qualifications") or [],
        experience=data["experience"],
        consultation_fee=data["consultation_fee"],
    )


def _employer_profile(user: User, data: Dict[str, Any]) -> Employer:
    subscription = data.get("subscription") or {
        "plan": "basic",
        "startDate": datetime.utcnow().isoformat(),
        "isActive": True,
    }
    return Employer(
        user_id=user.id,
        company_name=data["company_name"],
        industry=data["industry"],
        company_size=data["company_size"],
        address=data["address"],
        contact_info=data["contact_info"],
        subscription=subscription,
    )


PROFILE_BUILDERS = {
    "patient": _patient_profile,
    "doctor": _doctor_profile,
    "employer": _employer_profile,
}


def register(db: Session, data: Dict[str, Any]) -> User:
    """
    Create a user and their role profile in one transaction.

    Args:
        db: Database session
        data: Validated registration fields (snake_case, enums as values)

    Returns:
        User: The new user

    Raises:
        DuplicateRecordError: Email, employee id or licence number already taken
    """
    email = data["email"].lower()
    if db.query(User).filter(User.email == email).first():
        raise DuplicateRecordError("User already exists")

    role = data["role"]
    if role == "patient" and db.query(Patient).filter(Patient.employee_id == data["employee_id"]).first():
        raise DuplicateRecordError("Employee ID already registered")
    if role == "doctor" and db.query(Doctor).filter(Doctor.license_number == data["license_number"]).first():
        raise DuplicateRecordError("License number already registered")

    user = User(
        email=email,
        password_hash=hash_password(data["password"]),
        role=role,
        first_name=data["first_name"],
        last_name=data["last_name"],
        phone=data.get("phone"),
    )
    db.add(user)
    db.flush()

    db.add(PROFILE_BUILDERS[role](user, data))
    db.commit()
    db.refresh(user)

    logger.info(f"Registered {role} {user.id}")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials and stamp the login time.

    Raises:
        ValueError: Unknown email, wrong password or deactivated account
    """
    user = db.query(User).filter(User.email == email.lower()).first()
    if user is None:
        raise ValueError("Invalid credentials")
    if not user.is_active:
        raise ValueError("Account is deactivated")
    if not verify_password(password, user.password_hash):
        raise ValueError("Invalid credentials")

    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


def update_profile(
    db: Session,
    user: User,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    profile_fields: Optional[Dict[str, Any]] = None
) -> User:
    """
    Update basic user fields and the editable columns of the role profile.

    Raises:
        ValueError: Unknown or non-editable profile field, or a value the
            profile table rejects (nothing is written in that case)
    """
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if phone is not None:
        user.phone = phone

    if profile_fields:
        profile = user.profile
        if profile is None:
            raise NotFoundError("Profile not found")
        allowed = EDITABLE_PROFILE_FIELDS[user.role]
        rejected = sorted(set(profile_fields) - allowed)
        if rejected:
            raise ValueError(f"Fields cannot be updated: {', '.join(rejected)}")
        for name, value in profile_fields.items():
            setattr(profile, name, value)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Profile update rejected for user {user.id}: {e.orig}")
        raise ValueError("Profile update rejected: invalid or conflicting values")
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str):
    """
    Raises:
        ValueError: Current password is wrong or new password too short
    """
    if not verify_password(current_password, user.password_hash):
        raise ValueError("Current password is incorrect")
    if len(new_password) < 6:
        raise ValueError("New password must be at least 6 characters long")

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info(f"Password changed for user {user.id}")

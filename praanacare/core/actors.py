"""
The authenticated caller, resolved once per request from the bearer token.

Exactly one variant exists per role; each carries the user and the role's
profile record (which may be missing for a freshly registered account).
"""

from dataclasses import dataclass
from typing import Optional, Union

from praanacare.db.models import User, Patient, Doctor, Employer


@dataclass(frozen=True)
class PatientActor:
    user: User
    profile: Optional[Patient]
    role: str = "patient"


@dataclass(frozen=True)
class DoctorActor:
    user: User
    profile: Optional[Doctor]
    role: str = "doctor"


@dataclass(frozen=True)
class EmployerActor:
    user: User
    profile: Optional[Employer]
    role: str = "employer"


Actor = Union[PatientActor, DoctorActor, EmployerActor]

ACTOR_TYPES = {
    "patient": PatientActor,
    "doctor": DoctorActor,
    "employer": EmployerActor,
}


def actor_for(user: User) -> Actor:
    """
    Build the actor variant for a user's role.

    Raises:
        ValueError: The stored role is not one the service knows
    """
    actor_type = ACTOR_TYPES.get(user.role)
    if actor_type is None:
        raise ValueError(f"Unknown role: {user.role}")
    return actor_type(user=user, profile=user.profile)

"""
PraanaCare Health API - Authentication Routes

Registration, login and self-service account management.
"""

from fastapi import APIRouter, Depends, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from praanacare.api.dependencies import get_current_actor, get_request_id, check_rate_limit
from praanacare.api.errors import domain_errors
from praanacare.api.schemas import (
    RegisterRequest,
    LoginRequest,
    ProfileUpdate,
    PROFILE_UPDATE_SCHEMAS,
    ChangePasswordRequest,
    UserOut,
    PatientOut,
    DoctorOut,
    EmployerOut,
    ErrorResponse,
)
from praanacare.core.actors import Actor
from praanacare.core.logging import log_request
from praanacare.core.security import create_access_token
from praanacare.db.base import get_db
from praanacare.services import user_service

router = APIRouter(prefix="/auth", tags=["Auth"], dependencies=[Depends(check_rate_limit)])

PROFILE_SCHEMAS = {
    "patient": PatientOut,
    "doctor": DoctorOut,
    "employer": EmployerOut,
}


def _token_response(user) -> dict:
    return {
        "success": True,
        "token": create_access_token(user.id, user.role),
        "user": {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "role": user.role,
        },
    }


def _profile_changes(role: str, fields: dict) -> dict:
    try:
        return PROFILE_UPDATE_SCHEMAS[role].model_validate(fields).changes()
    except ValidationError as e:
        raise RequestValidationError(
            [{**error, "loc": ("body", "profile", *error["loc"])} for error in e.errors()]
        )


def _user_with_profile(user) -> dict:
    profile = user.profile
    body = UserOut.model_validate(user).model_dump(by_alias=True)
    body["profile"] = PROFILE_SCHEMAS[user.role].model_validate(profile) if profile is not None else None
    return body


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={400: {"model": ErrorResponse, "description": "Invalid input or already registered"}}
)
async def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    """
    Create a user and the profile for their role, and return a token.

    Returns:
        dict: success flag, token and basic user fields
    """
    log_request(endpoint="/auth/register", method="POST", request_id=request_id, role=payload.role.value)

    with domain_errors("/auth/register", request_id):
        user = user_service.register(db, payload.model_dump(mode="json"))
        return _token_response(user)


@router.post(
    "/login",
    summary="Log in with email and password",
    responses={400: {"model": ErrorResponse, "description": "Invalid credentials"}}
)
async def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/auth/login", method="POST", request_id=request_id)

    with domain_errors("/auth/login", request_id):
        user = user_service.authenticate(db, payload.email, payload.password)
        return _token_response(user)


@router.get("/me", summary="Current user with profile")
async def me(actor: Actor = Depends(get_current_actor)):
    return {"success": True, "user": _user_with_profile(actor.user)}


@router.put("/profile", summary="Update own user and profile fields")
async def update_profile(
    payload: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    """
    Update name and phone, and the editable columns of the role profile.
    Profile keys may be camelCase or snake_case and are validated against
    the caller's role before anything is written.
    """
    log_request(endpoint="/auth/profile", method="PUT", request_id=request_id)
    profile_fields = _profile_changes(actor.role, payload.profile) if payload.profile else {}

    with domain_errors("/auth/profile", request_id):
        user = user_service.update_profile(
            db,
            actor.user,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            profile_fields=profile_fields,
        )
        return {"success": True, "user": _user_with_profile(user)}


@router.post("/change-password", summary="Change own password")
async def change_password(
    payload: ChangePasswordRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/auth/change-password", method="POST", request_id=request_id)

    with domain_errors("/auth/change-password", request_id):
        user_service.change_password(db, actor.user, payload.current_password, payload.new_password)
        return {"success": True, "message": "Password changed"}

"""
PraanaCare Health API - API Dependencies

Dependency injection functions for FastAPI routes.
Provides reusable dependencies for authentication, role checks,
rate limiting, and the injected collaborators (publisher, assistant).
"""

import time
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from praanacare.core.actors import Actor, actor_for
from praanacare.core.logging import logger
from praanacare.core.security import TokenError, decode_access_token
from praanacare.core.settings import get_settings
from praanacare.db.base import get_db
from praanacare.db.models import User, Patient, Doctor, Employer
from praanacare.services.text_generation import AssistantService, TextGenerator, build_generator
from praanacare.utils.helpers import generate_request_id

settings = get_settings()

# Simple in-memory rate limiter (per process)
_rate_limit_cache = {}

_bearer = HTTPBearer(auto_error=False)


def get_request_id(request: Request) -> str:
    """
    Generate or extract request ID for tracking.

    Args:
        request: FastAPI request object

    Returns:
        str: Unique request ID
    """
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    return request_id or generate_request_id()


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        str: Client IP address
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


async def check_rate_limit(
    request: Request,
    request_id: str = Depends(get_request_id)
) -> None:
    """
    Sliding one-minute window per client IP.

    Raises:
        HTTPException: If rate limit exceeded
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    client_ip = get_client_ip(request)
    current_time = time.time()

    _rate_limit_cache[client_ip] = [
        ts for ts in _rate_limit_cache.get(client_ip, [])
        if current_time - ts < 60
    ]

    if len(_rate_limit_cache[client_ip]) >= settings.RATE_LIMIT_PER_MINUTE:
        logger.warning(
            f"Rate limit exceeded for IP: {client_ip}",
            extra={"request_id": request_id, "client_ip": client_ip}
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests from this IP, please try again later.",
            headers={"Retry-After": "60"}
        )

    _rate_limit_cache[client_ip].append(current_time)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db)
) -> Actor:
    """
    Resolve the bearer token to an actor.

    The token's claims are trusted once the signature and expiry check out;
    the user row is loaded for its profile and active flag, and its role
    must still match the role the token was issued for.

    Raises:
        HTTPException: 401 for a missing, invalid or expired token, an
            unknown or stale role or a deactivated account
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authorized, no token")

    try:
        claims = decode_access_token(credentials.credentials)
    except TokenError as e:
        raise _unauthorized(str(e))

    user = db.query(User).filter(User.id == claims["sub"]).first()
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    if claims["role"] != user.role:
        raise _unauthorized("Token role does not match user")

    try:
        return actor_for(user)
    except ValueError as e:
        raise _unauthorized(str(e))


def require_role(*roles: str) -> Callable:
    """
    Dependency factory allowing only the given roles.

    Usage:
        @router.get("/", dependencies=[Depends(require_role("doctor"))])
    """
    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions."
            )
        return actor

    return checker


def _profile_or_404(actor: Actor, label: str):
    if actor.profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} profile not found")
    return actor.profile


async def get_patient_profile(actor: Actor = Depends(require_role("patient"))) -> Patient:
    return _profile_or_404(actor, "Patient")


async def get_doctor_profile(actor: Actor = Depends(require_role("doctor"))) -> Doctor:
    return _profile_or_404(actor, "Doctor")


async def get_employer_profile(actor: Actor = Depends(require_role("employer"))) -> Employer:
    return _profile_or_404(actor, "Employer")


def get_text_generator() -> Optional[TextGenerator]:
    """Remote text generator, or None when the assistant runs on canned replies."""
    return build_generator()


def get_assistant(generator: Optional[TextGenerator] = Depends(get_text_generator)) -> AssistantService:
    return AssistantService(generator)

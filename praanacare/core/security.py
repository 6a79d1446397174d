"""
PraanaCare Health API - Security Module

Password hashing, bearer token issuance/verification and input sanitisation.
"""

from datetime import datetime, timedelta
from typing import Any, Dict

import bcrypt
import jwt

from praanacare.core.settings import get_settings
from praanacare.core.logging import logger

settings = get_settings()


class TokenError(Exception):
    """Raised when a bearer token is missing, malformed, expired or forged."""


def hash_password(password: str) -> str:
    """Hash a plaintext password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(user_id: str, role: str, expires_days: int = None) -> str:
    """
    Issue a signed access token.

    Args:
        user_id: Identifier of the authenticated user
        role: patient | doctor | employer
        expires_days: Override for the configured token lifetime

    Returns:
        str: Encoded JWT
    """
    now = datetime.utcnow()
    lifetime = timedelta(days=expires_days or settings.JWT_EXPIRE_DAYS)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token signature and expiry and return its claims.

    Raises:
        TokenError: If the token is expired or invalid
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")

    if not claims.get("sub") or not claims.get("role"):
        raise TokenError("Invalid token")
    return claims


def sanitize_input(text: str, max_length: int = 5000) -> str:
    """
    Sanitize free-text user input.

    Raises:
        ValueError: If input is not a string or exceeds maximum length
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    if len(text) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    text = text.replace('\x00', '')

    return text.strip()


class SecurityHeaders:
    """
    Security headers applied to every response.
    """

    @staticmethod
    def get_headers() -> dict:
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        }

"""
PraanaCare - Helper Utilities

Utility functions for common operations.
"""

import math
import secrets
import uuid
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone

from praanacare.config import PERIODS, DEFAULT_PERIOD


def generate_request_id() -> str:
    """
    Generate unique request ID.

    Returns:
        str: Unique request ID
    """
    return f"req_{secrets.token_hex(8)}"


def generate_message_id() -> str:
    return uuid.uuid4().hex


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Default value if division by zero

    Returns:
        float: Division result or default
    """
    return numerator / denominator if denominator else default


def period_delta(period: str) -> timedelta:
    """Length of a reporting period ("1d", "7d", "30d", "90d"); unknown periods fall back to 7d."""
    return PERIODS.get(period, PERIODS[DEFAULT_PERIOD])


def period_window(period: str, now: datetime = None) -> tuple:
    """
    Start and end of the reporting period ending now.

    Returns:
        tuple: (start, end)
    """
    end = now or datetime.utcnow()
    return end - period_delta(period), end


def to_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an offset-aware datetime to naive UTC, the form every stored
    timestamp uses. Naive values are assumed to be UTC already.
    """
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    """Pagination block returned alongside list results."""
    return {
        "current": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "total": total,
    }

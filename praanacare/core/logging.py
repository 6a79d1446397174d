"""
PraanaCare Health API - Logging Configuration

Structured logging with JSON formatting, request ids and
helpers for the health events the service cares about.
"""

import sys
import logging
from datetime import datetime
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from praanacare.core.settings import get_settings

settings = get_settings()

logger = logging.getLogger("praanacare")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with service metadata and source location.
    """

    def add_fields(self, log_record: Dict, record: logging.LogRecord, message_dict: Dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.utcnow().isoformat() + 'Z'

        log_record['service'] = 'praanacare-api'
        log_record['version'] = settings.APP_VERSION
        log_record['environment'] = settings.ENVIRONMENT

        log_record['level'] = record.levelname

        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno


def setup_logging():
    """
    Initialize logging configuration for the application.
    JSON output in production, human-readable output when LOG_FORMAT=text.
    """
    logger.handlers.clear()

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.LOG_FORMAT == "json" or settings.is_production():
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.propagate = False

    logger.info(
        "Logging initialized",
        extra={
            "log_level": settings.LOG_LEVEL,
            "log_format": settings.LOG_FORMAT,
            "environment": settings.ENVIRONMENT
        }
    )


def log_request(endpoint: str, method: str, request_id: str, **kwargs):
    """Log incoming API request."""
    logger.info(
        f"Incoming request: {method} {endpoint}",
        extra={
            "event_type": "api_request",
            "endpoint": endpoint,
            "method": method,
            "request_id": request_id,
            **kwargs
        }
    )


def log_response(endpoint: str, method: str, request_id: str, status_code: int, duration_ms: float):
    """Log API response."""
    logger.info(
        f"Response: {method} {endpoint} - {status_code}",
        extra={
            "event_type": "api_response",
            "endpoint": endpoint,
            "method": method,
            "request_id": request_id,
            "status_code": status_code,
            "duration_ms": duration_ms
        }
    )


def log_emergency(patient_id: str, alert_id: str, source: str, **kwargs):
    """Log an emergency escalation (vitals breach or assistant detection)."""
    logger.warning(
        f"Emergency detected for patient {patient_id}",
        extra={
            "event_type": "emergency",
            "patient_id": patient_id,
            "alert_id": alert_id,
            "source": source,
            **kwargs
        }
    )


def log_alert_transition(alert_id: str, previous: str, current: str, actor_id: str):
    """Log an alert lifecycle change."""
    logger.info(
        f"Alert {alert_id}: {previous} -> {current}",
        extra={
            "event_type": "alert_transition",
            "alert_id": alert_id,
            "previous_status": previous,
            "status": current,
            "actor_id": actor_id
        }
    )


def log_error(error: Exception, context: Dict[str, Any] = None):
    """Log error with context."""
    logger.error(
        f"Error occurred: {str(error)}",
        extra={
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=True
    )

"""
Translation of service-layer errors into HTTP errors.
"""

from contextlib import contextmanager

from fastapi import HTTPException, status

from praanacare.core.exceptions import (
    AccessDeniedError,
    AlertTransitionError,
    DuplicateRecordError,
    NotFoundError,
)
from praanacare.core.logging import logger, log_error
from praanacare.monitoring.audit_logger import audit_logger
from praanacare.monitoring.metrics import metrics_collector


@contextmanager
def domain_errors(endpoint: str, request_id: str):
    """
    Wrap a route body so domain errors surface with the right status code.

        with domain_errors("/patient/vitals", request_id):
            ...
    """
    try:
        yield
    except HTTPException:
        raise
    except AlertTransitionError as e:
        logger.warning(str(e), extra={"request_id": request_id})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except (DuplicateRecordError, ValueError) as e:
        logger.warning(f"Validation error: {str(e)}", extra={"request_id": request_id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        metrics_collector.record_error()
        log_error(e, context={"request_id": request_id, "endpoint": endpoint})
        audit_logger.log_error(request_id, type(e).__name__, str(e), {"endpoint": endpoint})
        raise

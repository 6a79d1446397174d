"""
PraanaCare Health API - Monitoring Routes

Operational counters in JSON and Prometheus text format.
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from praanacare.core.logging import log_error
from praanacare.core.settings import get_settings
from praanacare.monitoring.metrics import metrics_collector

settings = get_settings()

router = APIRouter(prefix="/metrics", tags=["Monitoring"])


@router.get(
    "",
    summary="Get service metrics",
    description="Retrieve operational metrics for monitoring"
)
async def get_metrics():
    """
    Aggregated counters: vitals recorded, emergencies, alerts created,
    alert transitions, chat traffic, response time and uptime.
    """
    try:
        return {"success": True, "metrics": metrics_collector.get_metrics()}
    except Exception as e:
        log_error(e, context={"endpoint": "/metrics"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve metrics"
        )


@router.get(
    "/prometheus",
    response_class=PlainTextResponse,
    summary="Get Prometheus metrics"
)
async def get_prometheus_metrics():
    if not settings.ENABLE_METRICS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Metrics endpoint is disabled"
        )

    try:
        return metrics_collector.export_prometheus()
    except Exception as e:
        log_error(e, context={"endpoint": "/metrics/prometheus"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export metrics"
        )

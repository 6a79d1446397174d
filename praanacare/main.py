"""
PraanaCare Health API - Main Application Entry Point

FastAPI application for workplace health monitoring: vitals ingestion,
emergency escalation, clinical and workforce dashboards, and a health
assistant, with live events over WebSocket.
"""

import time
import traceback
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from praanacare.api.routes import ai, auth, doctor, employer, health, monitoring, patient
from praanacare.api.schemas import HealthResponse
from praanacare.core.logging import setup_logging, logger, log_response, log_error
from praanacare.core.security import SecurityHeaders
from praanacare.core.settings import get_settings
from praanacare.db.base import init_db
from praanacare.monitoring.metrics import metrics_collector
from praanacare.realtime import socket
from praanacare.utils.helpers import generate_request_id

# Initialize settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info(f"Starting PraanaCare Health API v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    init_db()
    logger.info("Database initialised")

    if not settings.assistant_configured:
        logger.warning("OPENAI_API_KEY not set, assistant will use canned replies")

    yield

    # Shutdown
    logger.info("Shutting down PraanaCare Health API")


# Create FastAPI application
app = FastAPI(
    title="PraanaCare Health API",
    description="Workplace health monitoring, emergency escalation and health assistant",
    version=settings.APP_VERSION,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Attach a request id, time the request and log the response."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    request.state.request_id = request_id

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 2)

    metrics_collector.record_response_time(duration_ms)
    log_response(
        endpoint=request.url.path,
        method=request.method,
        request_id=request_id,
        status_code=response.status_code,
        duration_ms=duration_ms
    )

    response.headers["X-Request-ID"] = request_id
    for header, value in SecurityHeaders.get_headers().items():
        response.headers.setdefault(header, value)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": error.get("msg", "")})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Validation failed", "errors": errors}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error(exc, context={
        "endpoint": request.url.path,
        "request_id": getattr(request.state, "request_id", None)
    })

    content = {"success": False, "error": "Server error"}
    if settings.is_development():
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Include API routes
for module in (auth, patient, doctor, employer, ai, health, monitoring):
    app.include_router(module.router, prefix="/api")

app.include_router(socket.router)


@app.get("/health", response_model=HealthResponse, tags=["Monitoring"])
async def health_check():
    """
    Liveness check for container orchestration.
    """
    return HealthResponse(
        status="OK",
        service="praanacare-api",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        uptime_seconds=metrics_collector.get_metrics()["uptime_seconds"],
        assistant_configured=settings.assistant_configured,
        timestamp=datetime.utcnow()
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "praanacare.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )

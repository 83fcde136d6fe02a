"""
Health check and monitoring endpoints.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from call_retry.config import config
from call_retry.database import SessionLocal
from call_retry.logging_config import logger

router = APIRouter(tags=["Health & Monitoring"])

SERVICE_NAME = "call-retry-scheduler"
SERVICE_VERSION = "1.0.0"


# GET /health
# Gets: nothing
# Returns: {status, service, version}
# Example:
#   curl http://localhost:8000/health
@router.get("/health")
async def health_check():
    """
    Basic health check - returns 200 if service is running.
    Use this for basic liveness checks.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION
    }


# GET /health/ready
# Gets: nothing
# Returns: dependency readiness checks; 503 when not ready
# Example:
#   curl http://localhost:8000/health/ready
@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness check - verifies dependencies are available.
    Use this for Kubernetes readiness checks.

    Checks:
    - Database connectivity
    - Retry engine built from validated configuration
    """
    checks = {
        "database": False,
        "engine": getattr(request.app.state, "scheduler", None) is not None,
        "ready": False
    }

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        checks["database"] = True
        logger.debug("readiness_check_database", status="ok")
    except Exception as e:
        logger.warning("readiness_check_database", status="error", error=str(e))

    checks["ready"] = checks["database"] and checks["engine"]

    status_code = 200 if checks["ready"] else 503
    return JSONResponse(content=checks, status_code=status_code)


# GET /health/info
# Gets: nothing
# Returns: service configuration summary
# Example:
#   curl http://localhost:8000/health/info
@router.get("/health/info")
async def system_info(request: Request):
    """
    System information and the validated engine configuration in use.
    """
    engine = request.app.state.scheduler.configuration()
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "configuration": {
            "business_hours": engine["business_hours"],
            "default_timezone": engine["default_timezone"],
            "max_call_attempts": engine["max_attempts"],
            "debug_mode": config.DEBUG
        },
        "features": {
            "twilio_calls": config.has_twilio_config(),
            "sms_fallback": config.has_sms_config(),
            "redis_claims": config.has_redis(),
        }
    }


# GET /metrics
# Gets: nothing
# Returns: Prometheus text exposition
# Example:
#   curl http://localhost:8000/metrics
@router.get("/metrics")
async def metrics():
    """Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

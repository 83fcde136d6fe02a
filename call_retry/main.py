"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram

from call_retry.config import config, load_engine_settings
from call_retry.database import init_db
from call_retry.health import SERVICE_VERSION, router as health_router
from call_retry.logging_config import logger
from call_retry.reporting import default_reporter
from call_retry.routers.core import router as core_router
from call_retry.routers.retry import router as retry_router
from call_retry.scheduler import RetryScheduler

# Prometheus metrics
api_requests_total = Counter('api_requests_total', 'Total API requests', ['method', 'endpoint', 'status'])
api_request_duration = Histogram('api_request_duration_seconds', 'API request duration')

# Validated once at import; a bad configuration stops the process here.
engine_settings = load_engine_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("application_starting", version=SERVICE_VERSION)
    init_db()
    logger.info("database_initialized")
    logger.info(
        "retry_engine_configured",
        max_attempts=engine_settings.max_attempts,
        business_hours=app.state.scheduler.calendar.describe(),
        default_timezone=engine_settings.default_timezone,
    )
    logger.info("twilio_configured", configured=config.has_twilio_config())

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Call Retry Scheduler API",
    description="Business-hours aware retry scheduling for outbound intake calls",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

app.state.scheduler = RetryScheduler.from_settings(engine_settings, reporter=default_reporter())

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    api_requests_total.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    api_request_duration.observe(time.perf_counter() - started)
    return response


app.include_router(core_router)
app.include_router(health_router)
app.include_router(retry_router)

"""
Main FastAPI application for the prediction market cron service.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

# Load environment variables from .env before settings are read
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

from predictions_cron.core.config import settings
from predictions_cron.core.exceptions import CronError
from predictions_cron.core.logging import configure_logging, get_logger
from predictions_cron.core.middleware import CorrelationIdMiddleware
from predictions_cron.core import metrics
from predictions_cron.api.routes import cron
from predictions_cron.services.cron.football_client import FootballSyncClient

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["60/minute"],
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_STORAGE == "redis" else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Fail startup on an invalid cron config instead of on the first trigger
    cron.get_cron_config()

    if settings.TRACING_ENABLED:
        from predictions_cron.core.tracing import init_tracing

        init_tracing(
            app,
            service_name=settings.APP_NAME,
            environment=settings.ENVIRONMENT,
            service_version=settings.APP_VERSION,
            otlp_endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            console_export=settings.DEBUG,
            sampling_ratio=settings.OTEL_SAMPLING_RATIO,
        )

    if settings.SCHEDULER_ENABLED:
        from predictions_cron.core.scheduler import start_scheduler
        await start_scheduler()
        logger.info("Cron scheduler started")
    else:
        logger.info("In-process scheduler disabled - relying on an external cron service")

    metrics.update_scheduler_metrics()
    logger.info("Application started")

    yield

    if settings.SCHEDULER_ENABLED:
        from predictions_cron.core.scheduler import stop_scheduler
        await stop_scheduler()
        logger.info("Cron scheduler stopped")
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Cron endpoint that syncs football fixtures and live scores and settles predictions",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Correlation ID middleware must run before CORS for proper header handling
app.add_middleware(CorrelationIdMiddleware)

instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# /api/cron/predictions, same path the cron schedules already point at
app.include_router(cron.router, prefix="/api")


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "cron": "/api/cron/predictions",
            "health": "/health",
            "detailed_health": "/api/health",
            "metrics": "/metrics",
            "docs": "/docs"
        }
    }


@app.get("/health")
@limiter.limit("120/minute")
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/api/health")
@limiter.limit("60/minute")
async def api_health(request: Request):
    """Detailed health check with scheduler and football sync API status."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {}
    }
    all_healthy = True

    # 1. Scheduler
    from predictions_cron.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        jobs = scheduler.scheduler.get_jobs() if scheduler.scheduler else []
        health_status["components"]["scheduler"] = {
            "status": "running",
            "jobs_count": len(jobs),
            "jobs": [{"id": j.id, "name": j.name} for j in jobs]
        }
    elif settings.SCHEDULER_ENABLED:
        health_status["components"]["scheduler"] = {"status": "stopped"}
        all_healthy = False
    else:
        health_status["components"]["scheduler"] = {"status": "disabled"}
    metrics.update_scheduler_metrics()

    # 2. Football sync API
    try:
        config = cron.get_cron_config()
        base_url = config.base_url or cron.request_origin(request)
        async with FootballSyncClient(base_url, api_path=config.football_api_path, timeout=5.0) as client:
            status = await client.status()
        health_status["components"]["football_api"] = {
            "status": "connected",
            "counts": status.get("counts") if isinstance(status, dict) else None
        }
    except Exception as e:
        logger.error(f"Football API health check failed: {e}")
        health_status["components"]["football_api"] = {
            "status": "unreachable",
            "error": str(e) or e.__class__.__name__
        }
        all_healthy = False

    if not all_healthy:
        health_status["status"] = "degraded"

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content=health_status
    )


@app.exception_handler(CronError)
async def cron_exception_handler(request: Request, exc: CronError):
    """Cron errors raised outside the orchestrator keep their own response body."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "predictions_cron.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )

"""Main FastAPI application."""

from contextlib import asynccontextmanager

import sentry_sdk
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from internhub.api.v1 import api_router
from internhub.config import settings
from internhub.core.exceptions import register_exception_handlers
from internhub.core.logging import setup_logging
from internhub.core.scheduler import get_scheduler_status, start_scheduler, stop_scheduler
from internhub.db.session import engine, init_db
from internhub.realtime.broadcaster import broadcaster
from internhub.realtime.redis_bridge import RedisBroadcastBridge
from internhub.services.notification_service import get_notifier

# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)

# Cross-worker fan-out, only used with BROADCAST_BACKEND=redis
bridge = RedisBroadcastBridge(settings, broadcaster)

# Initialize Sentry for error tracking (only if DSN is properly configured)
if settings.SENTRY_DSN and settings.SENTRY_DSN.startswith("https://"):
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(
                level=None,  # Capture all logs
                event_level="ERROR",  # Only send ERROR and above as events
            ),
        ],
        release=settings.APP_VERSION,
        attach_stacktrace=True,
        send_default_pii=False,
    )
else:
    logger.info("sentry_disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await init_db()
    if settings.BROADCAST_BACKEND == "redis":
        await bridge.connect()
    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await broadcaster.drain()
    await get_notifier().drain()
    if bridge.is_connected:
        await bridge.disconnect()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Internship application pipeline with real-time sync across students, companies and admins",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    swagger_ui_parameters={
        "persistAuthorization": True,
    },
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with broadcast status."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "broadcast": {
            "backend": settings.BROADCAST_BACKEND,
            "bridge_connected": bridge.is_connected,
            "sessions": broadcaster.session_count,
        },
        "scheduler": {"running": get_scheduler_status()["running"]},
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error("unhandled_exception", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred",
        },
    )

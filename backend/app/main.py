"""Buildstate - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.cache import close_redis
from app.core.config import get_settings
from app.core.env_validation import validate_environment
from app.core.errors import register_exception_handlers
from app.core.logging_config import configure_logging, log_requests
from app.cron.scheduler import start_scheduler, stop_scheduler
from app.routers import (
    auth_router,
    users_router,
    properties_router,
    units_router,
    jobs_router,
    inspections_router,
    service_requests_router,
    recommendations_router,
    plans_router,
    billing_router,
    subscriptions_router,
    notifications_router,
    dashboard_router,
    reports_router,
    blog_router,
    invites_router,
    search_router,
)
from app.services.realtime import sio

# Hard-fails (exit 1) if required configuration is missing
validate_environment()

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await close_redis()


app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant property and facilities management: properties, units, tenants, jobs, inspections, service requests and maintenance plans.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# In production, wildcard (*) is blocked by env_validation.py
logger.info("CORS configured with origins: %s", settings.origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(log_requests)
register_exception_handlers(app)

app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(properties_router, prefix=settings.api_prefix)
app.include_router(units_router, prefix=settings.api_prefix)
app.include_router(jobs_router, prefix=settings.api_prefix)
app.include_router(inspections_router, prefix=settings.api_prefix)
app.include_router(service_requests_router, prefix=settings.api_prefix)
app.include_router(recommendations_router, prefix=settings.api_prefix)
app.include_router(plans_router, prefix=settings.api_prefix)
app.include_router(billing_router, prefix=settings.api_prefix)  # Stripe checkout + webhook
app.include_router(subscriptions_router, prefix=settings.api_prefix)
app.include_router(notifications_router, prefix=settings.api_prefix)
app.include_router(dashboard_router, prefix=settings.api_prefix)
app.include_router(reports_router, prefix=settings.api_prefix)
app.include_router(blog_router, prefix=settings.api_prefix)  # Public blog + admin automation
app.include_router(invites_router, prefix=settings.api_prefix)
app.include_router(search_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
    }


# Socket.IO shares the process; serve this with `uvicorn app.main:asgi_app`
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)

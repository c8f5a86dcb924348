"""
Civic Issue Reporter API - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from civic_reporter.config import settings
from civic_reporter.database import close_db
from civic_reporter.tasks import setup_scheduler, shutdown_scheduler
from civic_reporter.middleware import (
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    get_request_size_limit,
    get_rate_limits,
)
from civic_reporter.api.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.

    Handles:
    - Background scheduler startup
    - Background scheduler shutdown
    - Database connection cleanup on shutdown

    Tables are created by Alembic migrations, not at startup.
    """
    logger.info("Starting up Civic Issue Reporter API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"CORS Origins: {settings.cors_origins_list}")

    setup_scheduler()
    logger.info("Startup complete")

    yield

    logger.info("Shutting down Civic Issue Reporter API...")
    shutdown_scheduler()
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Civic Issue Reporter API",
    description="Citizen issue reporting with department routing and status tracking",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware is applied in reverse order of registration
# 1. Request logging (outermost - logs everything)
app.add_middleware(RequestLoggingMiddleware)

# 2. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 3. Rate limiting
rate_limits = get_rate_limits()
app.add_middleware(
    RateLimitMiddleware,
    submission_requests_per_minute=rate_limits["submission_limit"],
    general_requests_per_minute=rate_limits["general_limit"],
)

# 4. Request size limiting
app.add_middleware(
    RequestSizeLimitMiddleware,
    max_size=get_request_size_limit(),
)

# 5. CORS (innermost)
cors_origins = settings.cors_origins_list

if settings.ENVIRONMENT == "production" and "*" in cors_origins:
    logger.warning(
        "WARNING: CORS is set to allow all origins (*) in production. "
        "Set CORS_ORIGINS to specific origins."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Staff-Password", "Authorization"],
    max_age=600,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "civic-issue-reporter-api",
        "environment": settings.ENVIRONMENT,
        "version": VERSION
    }


@app.get("/")
async def root():
    """API information."""
    return {
        "name": "Civic Issue Reporter API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(api_router)

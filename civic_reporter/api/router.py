"""
Main API router aggregating all endpoint modules.
"""

from fastapi import APIRouter

from civic_reporter.api import issues, categories, admin, analytics, export, tasks

# Create main API router with /api prefix
api_router = APIRouter(prefix="/api")

# Include all sub-routers
api_router.include_router(issues.router)
api_router.include_router(categories.router)
api_router.include_router(admin.router)
api_router.include_router(analytics.router)
api_router.include_router(export.router)
api_router.include_router(tasks.router)

"""
API endpoints module.
"""

from civic_reporter.api import issues, categories, admin, analytics, export, tasks
from civic_reporter.api.router import api_router

__all__ = [
    "issues",
    "categories",
    "admin",
    "analytics",
    "export",
    "tasks",
    "api_router",
]

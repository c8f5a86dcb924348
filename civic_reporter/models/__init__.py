"""
Database models for the Civic Issue Reporter application.

This module exports all SQLAlchemy models and the lifecycle enumerations
used throughout the application.
"""

from civic_reporter.models.enums import (
    ChangeReason,
    ChangeSource,
    ChangeType,
    IssueStatus,
    OperationalStatus,
    Priority,
    ResolutionType,
    STATUS_RANKS,
    SyncStatus,
    TERMINAL_STATUSES,
    UserRole,
)
from civic_reporter.models.category import Category
from civic_reporter.models.department import Department, DepartmentCategory
from civic_reporter.models.user import User
from civic_reporter.models.issue import Issue, compute_urgency_score
from civic_reporter.models.status_update import StatusUpdate, classify_change

# Export all models
__all__ = [
    "Category",
    "Department",
    "DepartmentCategory",
    "User",
    "Issue",
    "StatusUpdate",
    "classify_change",
    "compute_urgency_score",
    "ChangeReason",
    "ChangeSource",
    "ChangeType",
    "IssueStatus",
    "OperationalStatus",
    "Priority",
    "ResolutionType",
    "SyncStatus",
    "UserRole",
    "STATUS_RANKS",
    "TERMINAL_STATUSES",
]

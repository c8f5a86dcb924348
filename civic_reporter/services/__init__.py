"""
Services module for business logic and the external system client.
"""

from civic_reporter.services.assignment import (
    AssignmentService,
    get_assignment_service,
    rank_departments,
    score_department
)
from civic_reporter.services.status_tracker import (
    StatusTracker,
    StatusTrackerError,
    IssueNotFoundError,
    InvalidDuplicateError,
    NoChangeError,
    StatusUpdateNotFoundError,
    UserNotFoundError,
    get_status_tracker
)
from civic_reporter.services.intake import (
    CategoryNotFoundError,
    IssueIntakeService,
    get_intake_service
)
from civic_reporter.services.statistics import (
    StatisticsService,
    get_statistics_service
)
from civic_reporter.services.analytics import (
    AnalyticsService,
    get_analytics_service
)
from civic_reporter.services.external_sync import (
    ExternalSyncError,
    ExternalSyncNotConfiguredError,
    ExternalSyncService,
    MunicipalSyncClient,
    get_sync_client
)

__all__ = [
    "AssignmentService",
    "get_assignment_service",
    "rank_departments",
    "score_department",
    "StatusTracker",
    "StatusTrackerError",
    "IssueNotFoundError",
    "InvalidDuplicateError",
    "NoChangeError",
    "StatusUpdateNotFoundError",
    "UserNotFoundError",
    "get_status_tracker",
    "CategoryNotFoundError",
    "IssueIntakeService",
    "get_intake_service",
    "StatisticsService",
    "get_statistics_service",
    "AnalyticsService",
    "get_analytics_service",
    "ExternalSyncError",
    "ExternalSyncNotConfiguredError",
    "ExternalSyncService",
    "MunicipalSyncClient",
    "get_sync_client"
]

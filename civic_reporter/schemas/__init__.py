from civic_reporter.schemas.common import (
    PaginatedResponse, MessageResponse, HealthResponse, AssignmentResult
)
from civic_reporter.schemas.issue import (
    IssueCreate, IssueResponse, IssueListItem, IssueFilters, NearbyIssue,
    IssueUpdate, DuplicateRequest, MyIssueStats, MyIssuesResponse,
    StatusChangeRequest, StatusUpdateResponse, StatusUpdateInternal, FeedbackRequest
)
from civic_reporter.schemas.department import (
    HandledCategory, DepartmentCreate, DepartmentUpdate, DepartmentResponse,
    DepartmentStatistics
)
from civic_reporter.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from civic_reporter.schemas.user import UserCreate, UserResponse
from civic_reporter.schemas.analytics import (
    AnalyticsOverview, AnalyticsSummary, ChangeTypeDistribution, TrendDataPoint
)

__all__ = [
    # Common
    "PaginatedResponse",
    "MessageResponse",
    "HealthResponse",
    "AssignmentResult",
    # Issue
    "IssueCreate",
    "IssueResponse",
    "IssueListItem",
    "IssueFilters",
    "NearbyIssue",
    "IssueUpdate",
    "DuplicateRequest",
    "MyIssueStats",
    "MyIssuesResponse",
    "StatusChangeRequest",
    "StatusUpdateResponse",
    "StatusUpdateInternal",
    "FeedbackRequest",
    # Department
    "HandledCategory",
    "DepartmentCreate",
    "DepartmentUpdate",
    "DepartmentResponse",
    "DepartmentStatistics",
    # Category
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    # User
    "UserCreate",
    "UserResponse",
    # Analytics
    "AnalyticsOverview",
    "AnalyticsSummary",
    "ChangeTypeDistribution",
    "TrendDataPoint",
]

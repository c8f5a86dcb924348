"""
Enumerations shared by the database models, schemas and services.

The issue lifecycle is an ordered enumeration: every status carries a
severity rank used when classifying status changes.
"""

from enum import Enum
from typing import Any, Dict


class IssueStatus(str, Enum):
    """Lifecycle stages of a civic issue."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    REOPENED = "reopened"
    ESCALATED = "escalated"

    @property
    def rank(self) -> int:
        """Severity rank of this stage."""
        return STATUS_RANKS[self]

    @property
    def is_terminal(self) -> bool:
        """Whether an issue in this stage no longer occupies department capacity."""
        return self in TERMINAL_STATUSES

    @classmethod
    def rank_of(cls, value: Any) -> int:
        """Rank for a raw status value; unknown or missing values rank 0."""
        try:
            return cls(value).rank
        except ValueError:
            return 0


STATUS_RANKS: Dict[IssueStatus, int] = {
    IssueStatus.DRAFT: 0,
    IssueStatus.SUBMITTED: 1,
    IssueStatus.OPEN: 2,
    IssueStatus.REOPENED: 2,
    IssueStatus.ACKNOWLEDGED: 3,
    IssueStatus.IN_PROGRESS: 4,
    IssueStatus.PENDING: 5,
    IssueStatus.RESOLVED: 6,
    IssueStatus.CLOSED: 7,
    IssueStatus.ESCALATED: 8,
    # Out-of-band stages
    IssueStatus.REJECTED: -1,
    IssueStatus.DUPLICATE: -2,
}

TERMINAL_STATUSES = frozenset({
    IssueStatus.RESOLVED,
    IssueStatus.CLOSED,
    IssueStatus.REJECTED,
    IssueStatus.DUPLICATE,
})


class ChangeType(str, Enum):
    """Derived classification of a single status change."""

    RESOLUTION = "resolution"
    REOPENING = "reopening"
    ESCALATION = "escalation"
    PROGRESS = "progress"
    REGRESSION = "regression"
    LATERAL = "lateral"


class ChangeReason(str, Enum):
    NORMAL_PROGRESSION = "normal_progression"
    ESCALATION = "escalation"
    ASSIGNMENT = "assignment"
    CITIZEN_REQUEST = "citizen_request"
    ADMIN_OVERRIDE = "admin_override"
    AUTO_ASSIGNMENT = "auto_assignment"
    DUPLICATE_FOUND = "duplicate_found"
    INSUFFICIENT_INFO = "insufficient_info"
    EXTERNAL_DEPENDENCY = "external_dependency"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    SYSTEM_AUTO = "system_auto"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ResolutionType(str, Enum):
    FIXED = "fixed"
    DUPLICATE = "duplicate"
    NOT_REPRODUCIBLE = "not_reproducible"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DEFERRED = "deferred"


class SyncStatus(str, Enum):
    """State of a status update with respect to the external municipal system."""

    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    NOT_REQUIRED = "not_required"


class ChangeSource(str, Enum):
    MANUAL = "manual"
    SYSTEM = "system"
    API = "api"
    MOBILE_APP = "mobile_app"
    WEB_PORTAL = "web_portal"
    INTEGRATION = "integration"


class OperationalStatus(str, Enum):
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    EMERGENCY_ONLY = "emergency_only"
    CLOSED = "closed"


class UserRole(str, Enum):
    CITIZEN = "citizen"
    DEPARTMENT_STAFF = "department_staff"
    DEPARTMENT_HEAD = "department_head"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# Valid values for check constraints
VALID_STATUSES = [s.value for s in IssueStatus]
VALID_CHANGE_REASONS = [r.value for r in ChangeReason]
VALID_PRIORITIES = [p.value for p in Priority]
VALID_RESOLUTION_TYPES = [r.value for r in ResolutionType]
VALID_SYNC_STATUSES = [s.value for s in SyncStatus]
VALID_CHANGE_SOURCES = [s.value for s in ChangeSource]
VALID_OPERATIONAL_STATUSES = [s.value for s in OperationalStatus]
VALID_ROLES = [r.value for r in UserRole]


def in_constraint(column: str, values: list) -> str:
    """Build the SQL for a CheckConstraint restricting a column to values."""
    return f"{column} IN ({', '.join(repr(v) for v in values)})"

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from civic_reporter.models.enums import (
    ChangeReason,
    ChangeSource,
    IssueStatus,
    Priority,
    ResolutionType,
)

class IssueBase(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    category_id: UUID
    subcategory: Optional[str] = Field(None, max_length=100)
    priority: Priority = Priority.MEDIUM
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    tags: List[str] = Field(default_factory=list, max_length=10)
    is_emergency: bool = False

class IssueCreate(IssueBase):
    """Payload for a citizen submitting a new issue."""
    reported_by_id: Optional[UUID] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip().lower() for tag in v if tag.strip()]

class IssueResponse(IssueBase):
    id: UUID
    status: str
    priority: str
    reported_by_id: Optional[UUID] = None
    assigned_department_id: Optional[UUID] = None
    assigned_to_id: Optional[UUID] = None
    escalation_level: int
    urgency_score: int
    expected_resolution_date: Optional[datetime] = None
    actual_resolution_date: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    feedback_rating: Optional[int] = None
    feedback_comment: Optional[str] = None
    is_duplicate: bool = False
    original_issue_id: Optional[UUID] = None
    duplicate_count: int = 0
    last_status_update: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class IssueListItem(BaseModel):
    """Compact issue representation for list views."""
    id: UUID
    title: str
    category_id: UUID
    status: str
    priority: str
    city: Optional[str] = None
    assigned_department_id: Optional[UUID] = None
    urgency_score: int
    created_at: datetime

    class Config:
        from_attributes = True

class NearbyIssue(IssueListItem):
    latitude: float
    longitude: float
    distance_km: float

class IssueUpdate(BaseModel):
    """
    Edit of an issue's text or priority by its reporter or by staff.

    Citizens identify themselves with reported_by_id.
    """
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    priority: Optional[Priority] = None
    reported_by_id: Optional[UUID] = None

class DuplicateRequest(BaseModel):
    original_issue_id: UUID
    updated_by_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)

class MyIssueStats(BaseModel):
    total: int = 0
    submitted: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0

class MyIssuesResponse(BaseModel):
    """A citizen's own issues, newest first, with counts by status."""
    issues: List[IssueListItem]
    stats: MyIssueStats

class IssueFilters(BaseModel):
    """Query parameters for filtering issues."""
    status: Optional[str] = None  # Comma-separated for multiple
    priority: Optional[str] = None  # Comma-separated for multiple
    category_id: Optional[UUID] = None
    assigned_department_id: Optional[UUID] = None
    reported_by_id: Optional[UUID] = None
    city: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1, le=100)

class StatusChangeRequest(BaseModel):
    """
    A staff action on an issue.

    At least one of status, priority or assigned_department_id must
    differ from the issue's current values.
    """
    status: Optional[IssueStatus] = None
    priority: Optional[Priority] = None
    assigned_department_id: Optional[UUID] = None
    assigned_to_id: Optional[UUID] = None
    updated_by_id: Optional[UUID] = None
    change_reason: ChangeReason = ChangeReason.NORMAL_PROGRESSION
    change_source: ChangeSource = ChangeSource.MANUAL
    sub_status: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)
    internal_notes: Optional[str] = Field(None, max_length=5000)
    escalation_reason: Optional[str] = Field(None, max_length=1000)
    resolution_type: Optional[ResolutionType] = None
    resolution_notes: Optional[str] = Field(None, max_length=2000)
    public_update: bool = True
    citizen_notified: bool = True

class StatusUpdateResponse(BaseModel):
    id: UUID
    issue_id: UUID
    status: str
    previous_status: Optional[str] = None
    change_type: str
    sub_status: Optional[str] = None
    change_reason: str
    change_source: str
    updated_by_id: Optional[UUID] = None
    updated_by_name: Optional[str] = None
    updated_by_role: Optional[str] = None
    notes: Optional[str] = None
    assigned_department_id: Optional[UUID] = None
    previous_assigned_department_id: Optional[UUID] = None
    priority: Optional[str] = None
    previous_priority: Optional[str] = None
    priority_changed: bool
    escalation_level: int
    resolution_type: Optional[str] = None
    time_in_previous_status: Optional[int] = None
    public_update: bool
    sync_status: str
    created_at: datetime

    class Config:
        from_attributes = True

class StatusUpdateInternal(StatusUpdateResponse):
    """Timeline entry including staff-only fields."""
    internal_notes: Optional[str] = None
    escalation_reason: Optional[str] = None
    resolution_notes: Optional[str] = None
    sync_error: Optional[str] = None
    synced_at: Optional[datetime] = None

class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)

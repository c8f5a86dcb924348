"""
StatusUpdate model: one recorded transition in an issue's lifecycle.

Records are append-only. They are created by
civic_reporter.services.status_tracker.StatusTracker and afterwards only
ever soft-deleted (deleted_at) or have their sync fields updated by the
external sync job.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civic_reporter.database import Base
from civic_reporter.models.enums import (
    ChangeReason,
    ChangeSource,
    ChangeType,
    IssueStatus,
    SyncStatus,
    VALID_CHANGE_REASONS,
    VALID_CHANGE_SOURCES,
    VALID_PRIORITIES,
    VALID_RESOLUTION_TYPES,
    VALID_STATUSES,
    VALID_SYNC_STATUSES,
    in_constraint,
)

StatusValue = Union[IssueStatus, str, None]

REOPENED_FROM = frozenset({IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value})
REOPENED_TO = frozenset({IssueStatus.OPEN.value, IssueStatus.IN_PROGRESS.value})


def _raw(value: StatusValue) -> Optional[str]:
    if isinstance(value, Enum):
        return value.value
    return value


def is_resolution(status: StatusValue) -> bool:
    return _raw(status) == IssueStatus.RESOLVED.value


def is_reopening(status: StatusValue, previous_status: StatusValue) -> bool:
    status = _raw(status)
    return status == IssueStatus.REOPENED.value or (
        _raw(previous_status) in REOPENED_FROM and status in REOPENED_TO
    )


def is_escalation(status: StatusValue, previous_status: StatusValue) -> bool:
    status = _raw(status)
    return status == IssueStatus.ESCALATED.value or (
        _raw(previous_status) == IssueStatus.PENDING.value
        and status == IssueStatus.IN_PROGRESS.value
    )


def classify_change(status: StatusValue, previous_status: StatusValue = None) -> ChangeType:
    """
    Classify a transition from previous_status to status.

    The special cases are checked in a fixed order (resolution, then
    reopening, then escalation) because several can match the same pair.
    Anything else is compared by lifecycle rank. Unknown or missing
    values rank 0, so a first-ever update to any stage above draft is
    progress.
    """
    if is_resolution(status):
        return ChangeType.RESOLUTION
    if is_reopening(status, previous_status):
        return ChangeType.REOPENING
    if is_escalation(status, previous_status):
        return ChangeType.ESCALATION

    current_rank = IssueStatus.rank_of(_raw(status))
    previous_rank = IssueStatus.rank_of(_raw(previous_status))
    if current_rank > previous_rank:
        return ChangeType.PROGRESS
    if current_rank < previous_rank:
        return ChangeType.REGRESSION
    return ChangeType.LATERAL


def duration_between(start: datetime, end: datetime) -> Dict[str, Any]:
    """
    Elapsed time from start to end.

    days, hours and minutes are whole units (floor division);
    total_hours keeps the fractional value.
    """
    elapsed_seconds = (end - start).total_seconds()
    return {
        "total_hours": elapsed_seconds / 3600,
        "days": int(elapsed_seconds // 86400),
        "hours": int((elapsed_seconds % 86400) // 3600),
        "minutes": int((elapsed_seconds % 3600) // 60),
    }


class StatusUpdate(Base):
    """
    Represents a single status, priority or assignment change of an issue.
    """

    __tablename__ = "status_updates"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    issue_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("issues.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Status
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    previous_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    sub_status: Mapped[Optional[str]] = mapped_column(String(50))

    # Who and why
    updated_by_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    updated_by_name: Mapped[Optional[str]] = mapped_column(String(100))
    updated_by_role: Mapped[Optional[str]] = mapped_column(String(50))
    change_reason: Mapped[str] = mapped_column(
        String(30),
        default=ChangeReason.NORMAL_PROGRESSION.value,
        server_default=ChangeReason.NORMAL_PROGRESSION.value,
        index=True
    )
    change_source: Mapped[str] = mapped_column(
        String(20),
        default=ChangeSource.MANUAL.value,
        server_default=ChangeSource.MANUAL.value
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)

    # Assignment
    assigned_to_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    assigned_department_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    previous_assigned_to_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    previous_assigned_department_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)

    # Timing
    time_in_previous_status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Priority
    priority: Mapped[Optional[str]] = mapped_column(String(20))
    previous_priority: Mapped[Optional[str]] = mapped_column(String(20))
    priority_changed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")

    # Escalation
    escalation_level: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    escalation_reason: Mapped[Optional[str]] = mapped_column(Text)

    # Resolution
    resolution_type: Mapped[Optional[str]] = mapped_column(String(20))
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text)

    # Visibility
    public_update: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")
    citizen_notified: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")

    # External sync
    sync_status: Mapped[str] = mapped_column(
        String(20),
        default=SyncStatus.NOT_REQUIRED.value,
        server_default=SyncStatus.NOT_REQUIRED.value,
        index=True
    )
    external_reference: Mapped[Optional[str]] = mapped_column(String(100))
    sync_error: Mapped[Optional[str]] = mapped_column(Text)
    synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    issue: Mapped["Issue"] = relationship("Issue", back_populates="status_updates")

    __table_args__ = (
        CheckConstraint(in_constraint("status", VALID_STATUSES), name="check_update_status"),
        CheckConstraint(
            "previous_status IS NULL OR " + in_constraint("previous_status", VALID_STATUSES),
            name="check_update_previous_status"
        ),
        CheckConstraint(in_constraint("change_reason", VALID_CHANGE_REASONS), name="check_change_reason"),
        CheckConstraint(in_constraint("change_source", VALID_CHANGE_SOURCES), name="check_change_source"),
        CheckConstraint(in_constraint("sync_status", VALID_SYNC_STATUSES), name="check_sync_status"),
        CheckConstraint(
            "priority IS NULL OR " + in_constraint("priority", VALID_PRIORITIES),
            name="check_update_priority"
        ),
        CheckConstraint(
            "resolution_type IS NULL OR " + in_constraint("resolution_type", VALID_RESOLUTION_TYPES),
            name="check_resolution_type"
        ),
        CheckConstraint("escalation_level >= 0", name="check_update_escalation_non_negative"),
        CheckConstraint("time_in_previous_status IS NULL OR time_in_previous_status >= 0",
                        name="check_time_in_previous_status"),
        Index("idx_status_updates_issue_created", "issue_id", "created_at"),
    )

    def is_resolution(self) -> bool:
        return is_resolution(self.status)

    def is_reopening(self) -> bool:
        return is_reopening(self.status, self.previous_status)

    def is_escalation(self) -> bool:
        return is_escalation(self.status, self.previous_status)

    def get_change_type(self) -> ChangeType:
        return classify_change(self.status, self.previous_status)

    def get_duration_since_change(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return duration_between(self.created_at, now or datetime.utcnow())

    @property
    def change_type(self) -> str:
        return self.get_change_type().value

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return (
            f"<StatusUpdate(id={self.id}, "
            f"issue_id={self.issue_id}, "
            f"{self.previous_status} -> {self.status})>"
        )

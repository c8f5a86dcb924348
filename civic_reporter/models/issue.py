"""
Issue model for civic problems reported by citizens.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civic_reporter.database import Base
from civic_reporter.models.enums import (
    IssueStatus,
    Priority,
    VALID_PRIORITIES,
    VALID_STATUSES,
    in_constraint,
)


PRIORITY_WEIGHTS = {
    Priority.CRITICAL.value: 40,
    Priority.HIGH.value: 30,
    Priority.MEDIUM.value: 20,
    Priority.LOW.value: 10,
}

# (max age in hours, weight); newer reports are more urgent
AGE_WEIGHTS = [(1, 20), (6, 15), (24, 10), (72, 5)]

EMERGENCY_WEIGHT = 30
MAX_ESCALATION_LEVEL = 5


def compute_urgency_score(
    priority: str,
    is_emergency: bool,
    created_at: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> int:
    """
    Urgency score (0-100) for an issue.

    Sum of the priority weight, an emergency bonus and an age weight,
    capped at 100.
    """
    now = now or datetime.utcnow()
    created_at = created_at or now

    score = PRIORITY_WEIGHTS.get(priority, 0)
    if is_emergency:
        score += EMERGENCY_WEIGHT

    age_hours = (now - created_at).total_seconds() / 3600
    for max_hours, weight in AGE_WEIGHTS:
        if age_hours <= max_hours:
            score += weight
            break

    return min(score, 100)


class Issue(Base):
    """
    Represents a location-tagged civic issue.

    Status, priority and assignment are changed only through
    StatusTracker, which appends a StatusUpdate for every transition and
    keeps last_status_update current.
    """

    __tablename__ = "issues"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Classification
    category_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    subcategory: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=IssueStatus.SUBMITTED.value,
        server_default=IssueStatus.SUBMITTED.value,
        index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Priority.MEDIUM.value,
        server_default=Priority.MEDIUM.value,
        index=True
    )

    # People and ownership
    reported_by_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    assigned_department_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    assigned_to_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Location
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    city: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    pincode: Mapped[Optional[str]] = mapped_column(String(10))

    tags: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        default=list
    )

    # Urgency
    escalation_level: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_emergency: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    urgency_score: Mapped[int] = mapped_column(Integer, default=0, server_default="0", index=True)

    # Resolution
    expected_resolution_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_resolution_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text)

    # Citizen feedback
    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text)

    # Duplicates
    is_duplicate: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    original_issue_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("issues.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    duplicate_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Timestamps
    last_status_update: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    # Relationships
    category: Mapped["Category"] = relationship("Category")
    assigned_department: Mapped[Optional["Department"]] = relationship("Department")
    reported_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[reported_by_id])
    assigned_to: Mapped[Optional["User"]] = relationship("User", foreign_keys=[assigned_to_id])
    status_updates: Mapped[List["StatusUpdate"]] = relationship(
        "StatusUpdate",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="StatusUpdate.created_at"
    )

    __table_args__ = (
        CheckConstraint(in_constraint("status", VALID_STATUSES), name="check_issue_status"),
        CheckConstraint(in_constraint("priority", VALID_PRIORITIES), name="check_issue_priority"),
        CheckConstraint(
            f"escalation_level >= 0 AND escalation_level <= {MAX_ESCALATION_LEVEL}",
            name="check_escalation_level_range"
        ),
        CheckConstraint("urgency_score >= 0 AND urgency_score <= 100", name="check_urgency_score_range"),
        CheckConstraint(
            "feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)",
            name="check_feedback_rating_range"
        ),
        CheckConstraint("duplicate_count >= 0", name="check_duplicate_count_non_negative"),
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="check_latitude_range"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="check_longitude_range"),
        Index("idx_issues_location", "latitude", "longitude"),
    )

    @property
    def lifecycle_status(self) -> Optional[IssueStatus]:
        try:
            return IssueStatus(self.status)
        except ValueError:
            return None

    @property
    def is_open(self) -> bool:
        """Whether the issue still occupies its department's capacity."""
        stage = self.lifecycle_status
        return stage is not None and not stage.is_terminal

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def not_deleted(cls):
        """Filter condition excluding soft-deleted issues."""
        return cls.deleted_at.is_(None)

    def refresh_urgency_score(self, now: Optional[datetime] = None) -> int:
        self.urgency_score = compute_urgency_score(
            self.priority or Priority.MEDIUM.value,
            bool(self.is_emergency),
            self.created_at,
            now
        )
        return self.urgency_score

    def __repr__(self) -> str:
        return (
            f"<Issue(id={self.id}, "
            f"status={self.status}, "
            f"priority={self.priority}, "
            f"title='{self.title[:30] if self.title else ''}...')>"
        )

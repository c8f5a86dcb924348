"""
Department model for municipal units that handle civic issues.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civic_reporter.database import Base
from civic_reporter.models.enums import (
    OperationalStatus,
    VALID_OPERATIONAL_STATUSES,
    in_constraint,
)


class DepartmentCategory(Base):
    """
    A category handled by a department.

    priority runs from 1 (handled first) to 10; is_primary marks the
    department's main responsibility for the category.
    """

    __tablename__ = "department_categories"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    department_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    category_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    priority: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    average_resolution_time: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")

    department: Mapped["Department"] = relationship(
        "Department",
        back_populates="handled_categories"
    )
    category: Mapped["Category"] = relationship(
        "Category",
        back_populates="department_links"
    )

    __table_args__ = (
        UniqueConstraint("department_id", "category_id", name="uq_department_category"),
        CheckConstraint("priority >= 1 AND priority <= 10", name="check_handled_priority_range"),
    )

    def __repr__(self) -> str:
        return (
            f"<DepartmentCategory(department_id={self.department_id}, "
            f"category_id={self.category_id}, "
            f"primary={self.is_primary}, priority={self.priority})>"
        )


class Department(Base):
    """
    Represents a municipal department.

    Tracks live load (capacity counters), performance metrics used when
    auto-assigning new issues, and aggregate statistics recomputed from
    the issue store.
    """

    __tablename__ = "departments"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Identity
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    contact_phone: Mapped[Optional[str]] = mapped_column(String(30))

    # Status
    priority_level: Mapped[int] = mapped_column(Integer, default=5, server_default="5", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1", index=True)
    is_emergency_department: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="0"
    )
    operational_status: Mapped[str] = mapped_column(
        String(20),
        default=OperationalStatus.OPERATIONAL.value,
        server_default=OperationalStatus.OPERATIONAL.value,
        index=True
    )
    last_status_update: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Capacity
    max_active_issues: Mapped[int] = mapped_column(Integer, default=50, server_default="50")
    current_active_issues: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    max_daily_issues: Mapped[int] = mapped_column(Integer, default=20, server_default="20")
    current_daily_issues: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Performance metrics
    average_resolution_time: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    resolution_rate: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    citizen_satisfaction_score: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    response_time_compliance: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    escalation_rate: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    reopen_rate: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")

    # Statistics
    total_issues_handled: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_issues_resolved: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_issues_pending: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_issues_escalated: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    statistics_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    # Relationships
    handled_categories: Mapped[List["DepartmentCategory"]] = relationship(
        "DepartmentCategory",
        back_populates="department",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            in_constraint("operational_status", VALID_OPERATIONAL_STATUSES),
            name="check_valid_operational_status"
        ),
        CheckConstraint("priority_level >= 1 AND priority_level <= 10", name="check_priority_level_range"),
        CheckConstraint("resolution_rate >= 0 AND resolution_rate <= 100", name="check_resolution_rate_range"),
        CheckConstraint(
            "citizen_satisfaction_score >= 0 AND citizen_satisfaction_score <= 5",
            name="check_satisfaction_range"
        ),
        CheckConstraint(
            "response_time_compliance >= 0 AND response_time_compliance <= 100",
            name="check_compliance_range"
        ),
        CheckConstraint("current_active_issues >= 0", name="check_active_issues_non_negative"),
    )

    @property
    def workload_percentage(self) -> int:
        """Current active load as a rounded percentage of max capacity."""
        if not self.max_active_issues:
            return 0
        return round((self.current_active_issues or 0) / self.max_active_issues * 100)

    @property
    def efficiency_score(self) -> int:
        """Mean of resolution rate, satisfaction (as %) and response compliance."""
        resolution = self.resolution_rate or 0
        satisfaction = (self.citizen_satisfaction_score or 0) * 20
        compliance = self.response_time_compliance or 0
        return round((resolution + satisfaction + compliance) / 3)

    def category_link(self, category_id: UUID) -> Optional["DepartmentCategory"]:
        """Return this department's handling entry for a category, if any."""
        for link in self.handled_categories:
            if link.category_id == category_id:
                return link
        return None

    def can_handle_category(self, category_id: UUID) -> bool:
        return self.category_link(category_id) is not None

    def is_within_capacity(self) -> bool:
        return (self.current_active_issues or 0) < (self.max_active_issues or 0)

    def can_accept_new_issue(self) -> bool:
        return (
            self.is_active
            and self.operational_status == OperationalStatus.OPERATIONAL.value
            and self.is_within_capacity()
        )

    def update_capacity(self, increment: bool = True) -> None:
        """
        Adjust the in-memory capacity counters.

        An assignment increments both the active and daily counters; a
        closure decrements the active counter, never below zero. Persisted
        counters are changed with the atomic statements in
        civic_reporter.services.assignment.
        """
        if increment:
            self.current_active_issues = (self.current_active_issues or 0) + 1
            self.current_daily_issues = (self.current_daily_issues or 0) + 1
        else:
            self.current_active_issues = max(0, (self.current_active_issues or 0) - 1)

    def __repr__(self) -> str:
        return (
            f"<Department(id={self.id}, "
            f"code={self.code}, "
            f"load={self.current_active_issues}/{self.max_active_issues}, "
            f"status={self.operational_status})>"
        )

"""
Category model for the kinds of civic issues citizens can report.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civic_reporter.database import Base
from civic_reporter.models.enums import VALID_PRIORITIES, in_constraint


class Category(Base):
    """
    Represents an issue category (pothole, sanitation, streetlight, ...).

    Departments declare which categories they handle through
    DepartmentCategory rows; the category's default priority and SLA
    hours seed new issues.
    """

    __tablename__ = "categories"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)

    default_priority: Mapped[str] = mapped_column(
        String(20),
        default="medium",
        server_default="medium"
    )

    # SLA targets (informational only)
    sla_response_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sla_resolution_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_emergency: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="1",
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    # Relationships
    department_links: Mapped[List["DepartmentCategory"]] = relationship(
        "DepartmentCategory",
        back_populates="category",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            in_constraint("default_priority", VALID_PRIORITIES),
            name="check_category_default_priority"
        ),
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, code={self.code}, name='{self.name}')>"

"""
User model for citizens and municipal staff.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civic_reporter.database import Base
from civic_reporter.models.enums import UserRole, VALID_ROLES, in_constraint


class User(Base):
    """
    A citizen reporting issues or a staff member acting on them.

    Staff belong to a department; the name and role are cached on every
    status update they record.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.CITIZEN.value,
        server_default=UserRole.CITIZEN.value,
        index=True
    )
    department_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    department: Mapped[Optional["Department"]] = relationship("Department")

    __table_args__ = (
        CheckConstraint(in_constraint("role", VALID_ROLES), name="check_valid_role"),
    )

    @property
    def is_staff(self) -> bool:
        return self.role != UserRole.CITIZEN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.full_name}', role={self.role})>"

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from civic_reporter.models.enums import OperationalStatus

class HandledCategory(BaseModel):
    category_id: UUID
    is_primary: bool = False
    priority: int = Field(default=1, ge=1, le=10)

    class Config:
        from_attributes = True

class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(..., min_length=2, max_length=10)
    description: Optional[str] = None
    contact_email: Optional[str] = Field(None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    contact_phone: Optional[str] = Field(None, max_length=30)
    priority_level: int = Field(default=5, ge=1, le=10)
    is_active: bool = True
    is_emergency_department: bool = False
    operational_status: OperationalStatus = OperationalStatus.OPERATIONAL
    max_active_issues: int = Field(default=50, ge=0)
    max_daily_issues: int = Field(default=20, ge=0)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

class DepartmentCreate(DepartmentBase):
    handled_categories: List[HandledCategory] = Field(default_factory=list)
    resolution_rate: float = Field(default=0.0, ge=0, le=100)
    citizen_satisfaction_score: float = Field(default=0.0, ge=0, le=5)
    response_time_compliance: float = Field(default=0.0, ge=0, le=100)

class DepartmentUpdate(BaseModel):
    """Partial update; only provided fields are applied."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    contact_email: Optional[str] = Field(None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    contact_phone: Optional[str] = Field(None, max_length=30)
    priority_level: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None
    is_emergency_department: Optional[bool] = None
    operational_status: Optional[OperationalStatus] = None
    max_active_issues: Optional[int] = Field(None, ge=0)
    max_daily_issues: Optional[int] = Field(None, ge=0)
    response_time_compliance: Optional[float] = Field(None, ge=0, le=100)
    handled_categories: Optional[List[HandledCategory]] = None

class DepartmentResponse(DepartmentBase):
    id: UUID
    contact_email: Optional[str] = None
    operational_status: str
    handled_categories: List[HandledCategory]
    current_active_issues: int
    current_daily_issues: int
    workload_percentage: int
    resolution_rate: float
    citizen_satisfaction_score: float
    response_time_compliance: float
    average_resolution_time: float
    escalation_rate: float
    reopen_rate: float
    efficiency_score: int
    total_issues_handled: int
    total_issues_resolved: int
    total_issues_pending: int
    total_issues_escalated: int
    statistics_updated_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

class DepartmentStatistics(BaseModel):
    """System-wide department aggregates."""
    total_departments: int
    active_departments: int
    emergency_departments: int
    total_capacity: int
    total_active_issues: int
    utilization_rate: int
    average_resolution_rate: float
    average_satisfaction: float

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from civic_reporter.models.enums import UserRole

class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=30)
    role: UserRole = UserRole.CITIZEN
    department_id: Optional[UUID] = None

class UserResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    department_id: Optional[UUID] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

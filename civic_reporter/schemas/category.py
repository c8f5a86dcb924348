from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID

from civic_reporter.models.enums import Priority

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(..., min_length=2, max_length=10)
    description: Optional[str] = None
    default_priority: Priority = Priority.MEDIUM
    sla_response_hours: Optional[int] = Field(None, ge=1)
    sla_resolution_hours: Optional[int] = Field(None, ge=1)
    is_emergency: bool = False
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    default_priority: Optional[Priority] = None
    sla_response_hours: Optional[int] = Field(None, ge=1)
    sla_resolution_hours: Optional[int] = Field(None, ge=1)
    is_emergency: Optional[bool] = None
    is_active: Optional[bool] = None

class CategoryResponse(CategoryBase):
    id: UUID
    default_priority: str
    created_at: datetime

    class Config:
        from_attributes = True

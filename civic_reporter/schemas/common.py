from pydantic import BaseModel
from typing import Generic, TypeVar, List, Optional
from uuid import UUID

T = TypeVar('T')

class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""
    items: List[T]
    total: int
    page: int
    per_page: int
    pages: int

class MessageResponse(BaseModel):
    """Simple message response."""
    message: str

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: Optional[str] = None

class AssignmentResult(BaseModel):
    """Outcome of an automatic or manual department assignment."""
    issue_id: UUID
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    score: Optional[float] = None
    assigned: bool

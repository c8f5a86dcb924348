from pydantic import BaseModel
from typing import Dict, List, Optional
from uuid import UUID

class TrendDataPoint(BaseModel):
    """Single data point for trend chart."""
    date: str  # ISO date string
    count: int

class CategoryCount(BaseModel):
    category_id: UUID
    category: str
    count: int

class DepartmentPerformance(BaseModel):
    department_id: UUID
    name: str
    code: str
    total_assigned: int
    resolved: int
    resolution_rate: float
    workload_percentage: int

class AnalyticsOverview(BaseModel):
    """Dashboard analytics for a reporting period."""
    period_days: int
    total_issues: int
    total_citizens: int
    total_departments: int
    recent_issues: int
    growth_rate: float
    average_resolution_days: float
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_category: List[CategoryCount]
    trend: List[TrendDataPoint]
    department_performance: List[DepartmentPerformance]

class AnalyticsSummary(BaseModel):
    """Quick stats for dashboard widgets."""
    total_issues: int
    pending_issues: int
    in_progress_issues: int
    resolved_issues: int
    unassigned_issues: int
    critical_issues: int
    emergency_issues: int

class ChangeTypeDistribution(BaseModel):
    period_days: int
    total_updates: int
    by_change_type: Dict[str, int]
    average_minutes_in_previous_status: Optional[float] = None

"""
Analytics API endpoints for the staff dashboard.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.api.deps import get_db, require_staff
from civic_reporter.schemas import AnalyticsOverview, AnalyticsSummary, ChangeTypeDistribution
from civic_reporter.services import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(require_staff)])


@router.get("", response_model=AnalyticsOverview)
async def get_analytics(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """
    Dashboard overview for the last N days.

    Returns:
    - Totals (issues, citizens, departments) and issues in the period
    - Growth rate versus the previous period of equal length
    - Counts by status, priority and top 10 categories
    - Daily counts for the last 7 days
    - Average resolution time in days
    - Per-department assignment and resolution figures
    """
    return await AnalyticsService(db).overview(days=days)


@router.get("/summary", response_model=AnalyticsSummary)
async def get_summary(db: AsyncSession = Depends(get_db)):
    """Quick counts for dashboard widgets."""
    return await AnalyticsService(db).summary()


@router.get("/change-types", response_model=ChangeTypeDistribution)
async def get_change_types(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """
    How status updates in the last N days break down by change type
    (resolution, reopening, escalation, progress, regression, lateral).
    """
    return await AnalyticsService(db).change_type_distribution(days=days)

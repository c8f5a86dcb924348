"""
Analytics service for the staff dashboard.

All figures are computed on demand from the issue, department and
status update tables.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.models import (
    Category,
    ChangeType,
    Department,
    Issue,
    IssueStatus,
    Priority,
    StatusUpdate,
    User,
    UserRole,
    classify_change,
)

logger = logging.getLogger(__name__)

TREND_DAYS = 7
TOP_CATEGORIES = 10


class AnalyticsService:
    """Computes dashboard analytics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, *conditions) -> int:
        query = select(func.count()).select_from(Issue).where(Issue.not_deleted(), *conditions)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def _grouped_counts(self, column) -> Dict[str, int]:
        result = await self.db.execute(
            select(column, func.count(Issue.id)).where(Issue.not_deleted()).group_by(column)
        )
        return {value: count for value, count in result.all()}

    async def trend(self, days: int = TREND_DAYS, now: Optional[datetime] = None) -> List[Dict]:
        """
        Daily issue counts for the last `days` days, oldest first.

        Days without issues are included with a count of 0.
        """
        now = now or datetime.utcnow()
        today = now.date()
        start = datetime.combine(today - timedelta(days=days - 1), datetime.min.time())

        result = await self.db.execute(
            select(
                func.date(Issue.created_at).label('date'),
                func.count().label('count')
            )
            .where(Issue.created_at >= start, Issue.not_deleted())
            .group_by(func.date(Issue.created_at))
        )
        counts = {str(row.date): row.count for row in result.all()}

        return [
            {"date": day.isoformat(), "count": counts.get(day.isoformat(), 0)}
            for day in (today - timedelta(days=offset) for offset in range(days - 1, -1, -1))
        ]

    async def average_resolution_days(self) -> float:
        result = await self.db.execute(
            select(Issue.created_at, Issue.actual_resolution_date).where(
                Issue.status == IssueStatus.RESOLVED.value,
                Issue.actual_resolution_date.isnot(None),
                Issue.not_deleted(),
            )
        )
        durations = [
            (resolved_at - created_at).days
            for created_at, resolved_at in result.all()
        ]
        if not durations:
            return 0.0
        return round(sum(durations) / len(durations), 1)

    async def department_performance(self) -> List[Dict]:
        resolved_filter = Issue.status == IssueStatus.RESOLVED.value
        result = await self.db.execute(
            select(
                Department,
                func.count(Issue.id).label("total"),
                func.count(Issue.id).filter(resolved_filter).label("resolved"),
            )
            .outerjoin(
                Issue,
                and_(Issue.assigned_department_id == Department.id, Issue.not_deleted()),
            )
            .group_by(Department.id)
            .order_by(Department.name)
        )

        performance = []
        for department, total, resolved in result.all():
            performance.append({
                "department_id": department.id,
                "name": department.name,
                "code": department.code,
                "total_assigned": total,
                "resolved": resolved,
                "resolution_rate": round(resolved / total * 100, 1) if total else 0.0,
                "workload_percentage": department.workload_percentage,
            })
        return performance

    async def overview(self, days: int = 30, now: Optional[datetime] = None) -> Dict:
        """
        Dashboard overview for a reporting period of `days` days.

        growth_rate compares issues created in the period with the
        period of equal length before it (0 when that period is empty).
        """
        now = now or datetime.utcnow()
        period_start = now - timedelta(days=days)
        previous_start = period_start - timedelta(days=days)

        total_issues = await self._count()
        recent_issues = await self._count(Issue.created_at >= period_start)
        previous_issues = await self._count(
            Issue.created_at >= previous_start,
            Issue.created_at < period_start,
        )
        growth_rate = 0.0
        if previous_issues > 0:
            growth_rate = round((recent_issues - previous_issues) / previous_issues * 100, 2)

        citizens = await self.db.execute(
            select(func.count()).select_from(User).where(User.role == UserRole.CITIZEN.value)
        )
        departments = await self.db.execute(select(func.count()).select_from(Department))

        category_result = await self.db.execute(
            select(Category.id, Category.name, func.count(Issue.id).label("count"))
            .join(Issue, Issue.category_id == Category.id)
            .where(Issue.not_deleted())
            .group_by(Category.id, Category.name)
            .order_by(func.count(Issue.id).desc())
            .limit(TOP_CATEGORIES)
        )

        return {
            "period_days": days,
            "total_issues": total_issues,
            "total_citizens": citizens.scalar() or 0,
            "total_departments": departments.scalar() or 0,
            "recent_issues": recent_issues,
            "growth_rate": growth_rate,
            "average_resolution_days": await self.average_resolution_days(),
            "by_status": await self._grouped_counts(Issue.status),
            "by_priority": await self._grouped_counts(Issue.priority),
            "by_category": [
                {"category_id": row.id, "category": row.name, "count": row.count}
                for row in category_result.all()
            ],
            "trend": await self.trend(now=now),
            "department_performance": await self.department_performance(),
        }

    async def summary(self) -> Dict[str, int]:
        return {
            "total_issues": await self._count(),
            "pending_issues": await self._count(Issue.status == IssueStatus.SUBMITTED.value),
            "in_progress_issues": await self._count(Issue.status == IssueStatus.IN_PROGRESS.value),
            "resolved_issues": await self._count(Issue.status == IssueStatus.RESOLVED.value),
            "unassigned_issues": await self._count(Issue.assigned_department_id.is_(None)),
            "critical_issues": await self._count(Issue.priority == Priority.CRITICAL.value),
            "emergency_issues": await self._count(Issue.is_emergency.is_(True)),
        }

    async def change_type_distribution(
        self,
        days: int = 30,
        now: Optional[datetime] = None
    ) -> Dict:
        """Classify every live status update of the last `days` days."""
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(
                StatusUpdate.status,
                StatusUpdate.previous_status,
                StatusUpdate.time_in_previous_status,
            ).where(
                StatusUpdate.created_at >= now - timedelta(days=days),
                StatusUpdate.deleted_at.is_(None),
            )
        )
        rows = result.all()

        distribution = {change_type.value: 0 for change_type in ChangeType}
        for row in rows:
            distribution[classify_change(row.status, row.previous_status).value] += 1

        durations = [row.time_in_previous_status for row in rows if row.time_in_previous_status is not None]

        return {
            "period_days": days,
            "total_updates": len(rows),
            "by_change_type": distribution,
            "average_minutes_in_previous_status": (
                round(sum(durations) / len(durations), 1) if durations else None
            ),
        }


def get_analytics_service(db: AsyncSession) -> AnalyticsService:
    """Factory function to create an AnalyticsService instance."""
    return AnalyticsService(db)

"""
Department statistics service.

Recomputes each department's totals and performance metrics from the
issues assigned to it, and resets the daily intake counters.
"""

import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.models import Department, Issue, IssueStatus, StatusUpdate
from civic_reporter.models.status_update import is_reopening

logger = logging.getLogger(__name__)

RESOLVED_STATUSES = {IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value}


def _percentage(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


class StatisticsService:
    """Aggregates issue data into department statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_statistics(self, department: Department) -> Department:
        """
        Recompute a department's statistics from its assigned issues.

        Updates total/resolved/pending/escalated counts, resolution rate
        (rounded percentage), average resolution time in hours, citizen
        satisfaction (mean feedback rating), escalation rate and reopen rate.
        A department with no issues keeps its current metrics.
        """
        result = await self.db.execute(
            select(
                Issue.id,
                Issue.status,
                Issue.escalation_level,
                Issue.created_at,
                Issue.actual_resolution_date,
                Issue.feedback_rating,
            ).where(Issue.assigned_department_id == department.id, Issue.not_deleted())
        )
        rows = result.all()
        total = len(rows)

        if total == 0:
            logger.debug(f"No issues assigned to {department.code}; statistics unchanged")
            return department

        resolved = sum(1 for row in rows if row.status in RESOLVED_STATUSES)
        pending = sum(1 for row in rows if not IssueStatus(row.status).is_terminal)
        escalated = sum(1 for row in rows if (row.escalation_level or 0) > 0)

        resolution_hours = [
            (row.actual_resolution_date - row.created_at).total_seconds() / 3600
            for row in rows
            if row.status in RESOLVED_STATUSES and row.actual_resolution_date
        ]
        ratings = [row.feedback_rating for row in rows if row.feedback_rating is not None]

        reopened = await self._count_reopened_issues([row.id for row in rows])

        department.total_issues_handled = total
        department.total_issues_resolved = resolved
        department.total_issues_pending = pending
        department.total_issues_escalated = escalated
        department.resolution_rate = _percentage(resolved, total)
        department.escalation_rate = _percentage(escalated, total)
        department.reopen_rate = _percentage(reopened, total)
        if resolution_hours:
            department.average_resolution_time = round(
                sum(resolution_hours) / len(resolution_hours), 2
            )
        if ratings:
            department.citizen_satisfaction_score = round(sum(ratings) / len(ratings), 2)
        department.statistics_updated_at = datetime.utcnow()

        logger.info(
            f"Updated statistics for {department.code}: "
            f"{resolved}/{total} resolved, {pending} pending, {escalated} escalated"
        )
        return department

    async def _count_reopened_issues(self, issue_ids: List) -> int:
        if not issue_ids:
            return 0
        result = await self.db.execute(
            select(StatusUpdate.issue_id, StatusUpdate.status, StatusUpdate.previous_status)
            .where(
                StatusUpdate.issue_id.in_(issue_ids),
                StatusUpdate.deleted_at.is_(None),
            )
        )
        return len({
            row.issue_id for row in result.all()
            if is_reopening(row.status, row.previous_status)
        })

    async def refresh_all(self) -> Dict[str, int]:
        """
        Recompute statistics for every active department.

        Returns:
            Dict with departments_updated
        """
        result = await self.db.execute(
            select(Department).where(Department.is_active.is_(True))
        )
        departments = result.scalars().all()

        for department in departments:
            await self.update_statistics(department)

        logger.info(f"Refreshed statistics for {len(departments)} departments")
        return {"departments_updated": len(departments)}

    async def reset_daily_counters(self) -> Dict[str, int]:
        """
        Zero every department's daily intake counter.

        Returns:
            Dict with departments_reset
        """
        result = await self.db.execute(
            update(Department)
            .where(Department.current_daily_issues != 0)
            .values(current_daily_issues=0)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Reset daily counters for {result.rowcount} departments")
        return {"departments_reset": result.rowcount}

    async def get_department_statistics(self) -> Dict:
        """System-wide department aggregates."""
        result = await self.db.execute(
            select(
                func.count(Department.id).label("total"),
                func.count(Department.id).filter(Department.is_active.is_(True)).label("active"),
                func.count(Department.id).filter(
                    Department.is_emergency_department.is_(True)
                ).label("emergency"),
                func.coalesce(func.sum(Department.max_active_issues), 0).label("capacity"),
                func.coalesce(func.sum(Department.current_active_issues), 0).label("load"),
                func.avg(Department.resolution_rate).label("avg_resolution_rate"),
                func.avg(Department.citizen_satisfaction_score).label("avg_satisfaction"),
            )
        )
        row = result.one()

        return {
            "total_departments": row.total or 0,
            "active_departments": row.active or 0,
            "emergency_departments": row.emergency or 0,
            "total_capacity": int(row.capacity),
            "total_active_issues": int(row.load),
            "utilization_rate": _percentage(int(row.load), int(row.capacity)),
            "average_resolution_rate": round(float(row.avg_resolution_rate or 0), 2),
            "average_satisfaction": round(float(row.avg_satisfaction or 0), 2),
        }


def get_statistics_service(db: AsyncSession) -> StatisticsService:
    """Factory function to create a StatisticsService instance."""
    return StatisticsService(db)

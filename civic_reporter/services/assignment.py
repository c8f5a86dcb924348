"""
Department assignment service.

Scores the departments that handle an issue's category and assigns the
issue to the best one. Capacity counters are changed with single UPDATE
statements so concurrent submissions cannot overrun a department's
max_active_issues when capacity is enforced.
"""

import logging
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from civic_reporter.config import settings
from civic_reporter.models import Department, DepartmentCategory, Issue, OperationalStatus

logger = logging.getLogger(__name__)

CATEGORY_PRIORITY_WEIGHT = 10
PRIMARY_CATEGORY_BONUS = 20
LOAD_WEIGHT = 30
RESOLUTION_RATE_WEIGHT = 0.2
SATISFACTION_WEIGHT = 5
PRIORITY_LEVEL_WEIGHT = 2


def score_department(department: Department, category_id: UUID) -> float:
    """
    Score a department for an issue in the given category.

    Higher is better. The department must handle the category.

    Raises:
        ValueError: If the department does not handle category_id
    """
    link = department.category_link(category_id)
    if link is None:
        raise ValueError(f"Department {department.code} does not handle category {category_id}")

    score = (11 - link.priority) * CATEGORY_PRIORITY_WEIGHT
    if link.is_primary:
        score += PRIMARY_CATEGORY_BONUS

    # Less loaded departments are favoured; no capacity means no load bonus
    max_active = department.max_active_issues or 0
    if max_active > 0:
        score += (1 - (department.current_active_issues or 0) / max_active) * LOAD_WEIGHT

    score += (department.resolution_rate or 0) * RESOLUTION_RATE_WEIGHT
    score += (department.citizen_satisfaction_score or 0) * SATISFACTION_WEIGHT
    score += (department.priority_level or 0) * PRIORITY_LEVEL_WEIGHT

    return score


def rank_departments(
    departments: List[Department],
    category_id: UUID
) -> List[Tuple[Department, float]]:
    """
    Rank candidate departments by score, highest first.

    The sort is stable: on equal scores the department that came first in
    the input keeps its place.
    """
    scored = [(dept, score_department(dept, category_id)) for dept in departments]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


class AssignmentService:
    """Picks departments for issues and maintains capacity counters."""

    def __init__(self, db: AsyncSession, enforce_capacity: Optional[bool] = None):
        """
        Initialize the assignment service.

        Args:
            db: Async database session
            enforce_capacity: Skip full departments when auto-assigning
                (defaults to settings.ENFORCE_DEPARTMENT_CAPACITY)
        """
        self.db = db
        if enforce_capacity is None:
            enforce_capacity = settings.ENFORCE_DEPARTMENT_CAPACITY
        self.enforce_capacity = enforce_capacity

    async def get_candidates(self, category_id: UUID) -> List[Department]:
        """
        Active, operational departments handling the category.

        Ordered by creation time (then id), which is the tie-break order
        used by rank_departments.
        """
        result = await self.db.execute(
            select(Department)
            .options(selectinload(Department.handled_categories))
            .where(
                Department.is_active.is_(True),
                Department.operational_status == OperationalStatus.OPERATIONAL.value,
                Department.handled_categories.any(DepartmentCategory.category_id == category_id),
            )
            .order_by(Department.created_at, Department.id)
        )
        return list(result.scalars().all())

    async def rank_candidates(self, category_id: UUID) -> List[Tuple[Department, float]]:
        return rank_departments(await self.get_candidates(category_id), category_id)

    async def find_best_department_for_issue(
        self,
        category_id: UUID,
        location: Optional[Any] = None,
        priority: Optional[str] = None
    ) -> Optional[Department]:
        """
        Find the highest-scoring department for an issue.

        location and priority are accepted for callers but do not affect
        the score.

        Returns:
            The best department, or None when no department handles the
            category (the issue is left for manual triage)
        """
        ranked = await self.rank_candidates(category_id)
        if not ranked:
            logger.info(f"No department available for category {category_id}")
            return None
        return ranked[0][0]

    async def claim_department(
        self,
        ranked: List[Tuple[Department, float]],
        exclude_id: Optional[UUID] = None,
        reserve: bool = True
    ) -> Optional[Tuple[Department, float]]:
        """
        Pick a department from a ranking and take a capacity slot in it.

        With capacity enforced, departments are tried in ranked order and
        the first one with a free slot wins. Otherwise the best department
        is used regardless of its load. exclude_id skips a department (the
        issue's current one on reassignment); reserve=False picks without
        touching the counters.

        Returns:
            (department, score), or None if no department qualifies
        """
        candidates = [pair for pair in ranked if pair[0].id != exclude_id]
        if not candidates:
            return None
        if not reserve:
            return candidates[0]

        if self.enforce_capacity:
            for department, score in candidates:
                if await self.try_reserve_capacity(department.id):
                    return department, score
            logger.warning(f"All {len(candidates)} candidate departments are at capacity")
            return None

        await self.increment_capacity(candidates[0][0].id)
        return candidates[0]

    async def auto_assign(self, issue: Issue) -> Optional[Tuple[Department, float]]:
        """
        Assign an issue to the best department and take a capacity slot.

        Returns:
            (department, score), or None if the issue stays unassigned
        """
        ranked = await self.rank_candidates(issue.category_id)
        if not ranked:
            logger.info(f"Issue {issue.id} left unassigned: no department handles its category")
            return None

        chosen = await self.claim_department(ranked)
        if chosen is None:
            logger.warning(f"Issue {issue.id} left unassigned: no candidate department has capacity")
            return None

        department, score = chosen
        issue.assigned_department_id = department.id
        logger.info(f"Assigned issue {issue.id} to {department.code} (score {score:.1f})")
        return chosen

    async def increment_capacity(self, department_id: UUID) -> None:
        """Take an active slot and count a daily assignment."""
        await self.db.execute(
            update(Department)
            .where(Department.id == department_id)
            .values(
                current_active_issues=Department.current_active_issues + 1,
                current_daily_issues=Department.current_daily_issues + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self._reload(department_id)

    async def decrement_capacity(self, department_id: UUID) -> None:
        """Free an active slot; the counter never goes below zero."""
        await self.db.execute(
            update(Department)
            .where(Department.id == department_id)
            .values(
                current_active_issues=case(
                    (Department.current_active_issues > 0, Department.current_active_issues - 1),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self._reload(department_id)

    async def try_reserve_capacity(self, department_id: UUID) -> bool:
        """
        Take an active slot only if the department is below its maximum.

        Returns:
            True if a slot was reserved
        """
        result = await self.db.execute(
            update(Department)
            .where(
                Department.id == department_id,
                Department.current_active_issues < Department.max_active_issues,
            )
            .values(
                current_active_issues=Department.current_active_issues + 1,
                current_daily_issues=Department.current_daily_issues + 1,
            )
            .execution_options(synchronize_session=False)
        )
        reserved = result.rowcount == 1
        if reserved:
            await self._reload(department_id)
        return reserved

    async def _reload(self, department_id: UUID) -> None:
        # Only a Department already loaded in this session needs its counters refreshed
        key = self.db.identity_key(Department, department_id)
        department = self.db.identity_map.get(key)
        if department is not None:
            await self.db.refresh(
                department,
                attribute_names=["current_active_issues", "current_daily_issues"]
            )


def get_assignment_service(db: AsyncSession) -> AssignmentService:
    """
    Factory function to create an AssignmentService instance.

    Args:
        db: Async database session

    Returns:
        AssignmentService instance
    """
    return AssignmentService(db)

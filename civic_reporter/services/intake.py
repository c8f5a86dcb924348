"""
Issue intake: creating a citizen's issue, assigning it and recording its
first status update.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.config import settings
from civic_reporter.models import Category, ChangeSource, Department, Issue, IssueStatus, User
from civic_reporter.schemas.issue import IssueCreate
from civic_reporter.services.assignment import AssignmentService
from civic_reporter.services.status_tracker import StatusTracker, UserNotFoundError

logger = logging.getLogger(__name__)


class CategoryNotFoundError(Exception):
    """Raised when an issue names a missing or inactive category."""
    pass


class IssueIntakeService:
    """Creates issues and routes them to a department."""

    def __init__(
        self,
        db: AsyncSession,
        assignment: Optional[AssignmentService] = None,
        tracker: Optional[StatusTracker] = None
    ):
        self.db = db
        self.assignment = assignment or AssignmentService(db)
        self.tracker = tracker or StatusTracker(db, self.assignment)

    async def submit(
        self,
        data: IssueCreate,
        change_source: ChangeSource = ChangeSource.WEB_PORTAL,
        now: Optional[datetime] = None
    ) -> Tuple[Issue, Optional[Tuple[Department, float]]]:
        """
        Create an issue, auto-assign it and record the "submitted" update.

        Priority falls back to the category's default when the payload
        does not set one; a category flagged as emergency marks the issue
        as an emergency.

        Returns:
            (issue, (department, score) or None when left unassigned)

        Raises:
            CategoryNotFoundError: If the category is missing or inactive
            UserNotFoundError: If reported_by_id does not match a user
        """
        now = now or datetime.utcnow()

        category = await self.db.get(Category, data.category_id)
        if category is None or not category.is_active:
            raise CategoryNotFoundError(f"Category {data.category_id} not found")

        if data.reported_by_id is not None:
            reporter = await self.db.get(User, data.reported_by_id)
            if reporter is None:
                raise UserNotFoundError(f"User {data.reported_by_id} not found")

        priority = data.priority.value
        if "priority" not in data.model_fields_set:
            priority = category.default_priority

        issue = Issue(
            id=uuid4(),
            title=data.title,
            description=data.description,
            category_id=category.id,
            subcategory=data.subcategory,
            status=IssueStatus.SUBMITTED.value,
            priority=priority,
            reported_by_id=data.reported_by_id,
            latitude=data.latitude,
            longitude=data.longitude,
            address=data.address,
            city=data.city or settings.DEFAULT_CITY,
            pincode=data.pincode,
            tags=data.tags,
            is_emergency=data.is_emergency or category.is_emergency,
            escalation_level=0,
            created_at=now,
            updated_at=now,
        )
        issue.refresh_urgency_score(now)
        self.db.add(issue)

        assignment = await self.assignment.auto_assign(issue)
        await self.tracker.record_submission(
            issue,
            updated_by_id=data.reported_by_id,
            change_source=change_source,
            now=now
        )
        await self.db.flush()

        logger.info(
            f"Issue {issue.id} submitted in category {category.code} "
            f"(priority={issue.priority}, urgency={issue.urgency_score})"
        )
        return issue, assignment


def get_intake_service(db: AsyncSession) -> IssueIntakeService:
    """Factory function to create an IssueIntakeService instance."""
    return IssueIntakeService(db)

"""
Status tracking service.

Every change to an issue's status, priority or assignment goes through
StatusTracker.record_change, which in one unit of work:
1. Appends a StatusUpdate with its derived fields filled in
2. Applies the change to the Issue (including last_status_update)
3. Moves department capacity when an issue opens, closes or changes hands
4. Flags the record for external sync when an endpoint is configured

The caller owns the transaction and commits it.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.config import settings
from civic_reporter.models import (
    ChangeReason,
    ChangeSource,
    Department,
    Issue,
    IssueStatus,
    Priority,
    ResolutionType,
    StatusUpdate,
    SyncStatus,
    User,
)
from civic_reporter.models.issue import MAX_ESCALATION_LEVEL
from civic_reporter.services.assignment import AssignmentService

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "System"


class StatusTrackerError(Exception):
    """Base class for status tracking errors."""
    pass


class IssueNotFoundError(StatusTrackerError):
    """Raised when the issue does not exist."""
    pass


class UserNotFoundError(StatusTrackerError):
    """Raised when the updating user does not exist."""
    pass


class StatusUpdateNotFoundError(StatusTrackerError):
    """Raised when a status update does not exist or is already deleted."""
    pass


class NoChangeError(StatusTrackerError):
    """Raised when a requested change leaves the issue as it is."""
    pass


class InvalidDuplicateError(StatusTrackerError):
    """Raised when an issue is marked as a duplicate of itself."""
    pass


def _value(member: Union[str, IssueStatus, Priority, None]) -> Optional[str]:
    return getattr(member, "value", member)


def _is_active(status: Optional[str]) -> bool:
    try:
        return not IssueStatus(status).is_terminal
    except ValueError:
        return False


class StatusTracker:
    """Records issue lifecycle transitions and their side effects."""

    def __init__(self, db: AsyncSession, assignment: Optional[AssignmentService] = None):
        self.db = db
        self.assignment = assignment or AssignmentService(db)

    async def get_issue(self, issue_id: UUID) -> Issue:
        issue = await self.db.get(Issue, issue_id)
        if issue is None or issue.is_deleted:
            raise IssueNotFoundError(f"Issue {issue_id} not found")
        return issue

    async def latest_update(
        self,
        issue_id: UUID,
        before: Optional[datetime] = None
    ) -> Optional[StatusUpdate]:
        """
        Most recent live status update of an issue.

        With before, only records created at or before that moment count,
        so a backfilled record is measured against its real predecessor.
        """
        query = select(StatusUpdate).where(
            StatusUpdate.issue_id == issue_id,
            StatusUpdate.deleted_at.is_(None),
        )
        if before is not None:
            query = query.where(StatusUpdate.created_at <= before)
        result = await self.db.execute(
            query.order_by(StatusUpdate.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def _actor(self, updated_by_id: Optional[UUID]):
        """Cached name and role of the updater; "System" when there is no user."""
        if updated_by_id is None:
            return SYSTEM_ACTOR, None
        user = await self.db.get(User, updated_by_id)
        if user is None:
            raise UserNotFoundError(f"User {updated_by_id} not found")
        return user.full_name, user.role

    def _initial_sync_status(self) -> str:
        if settings.external_sync_enabled:
            return SyncStatus.PENDING.value
        return SyncStatus.NOT_REQUIRED.value

    async def record_submission(
        self,
        issue: Issue,
        updated_by_id: Optional[UUID] = None,
        change_source: ChangeSource = ChangeSource.WEB_PORTAL,
        now: Optional[datetime] = None
    ) -> StatusUpdate:
        """
        Record the first status update of a newly created issue.

        The issue must already be added to the session.
        """
        now = now or datetime.utcnow()
        source = _value(change_source)
        name, role = await self._actor(updated_by_id)

        reason = ChangeReason.NORMAL_PROGRESSION
        if issue.assigned_department_id is not None:
            reason = ChangeReason.AUTO_ASSIGNMENT

        record = StatusUpdate(
            issue_id=issue.id,
            status=issue.status,
            previous_status=None,
            updated_by_id=updated_by_id,
            updated_by_name=name,
            updated_by_role=role,
            change_reason=reason.value,
            change_source=source,
            assigned_department_id=issue.assigned_department_id,
            priority=issue.priority,
            escalation_level=issue.escalation_level or 0,
            sync_status=self._initial_sync_status(),
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)
        issue.last_status_update = now
        await self._touch_department(issue.assigned_department_id, now)
        return record

    async def record_change(
        self,
        issue: Issue,
        status: Optional[IssueStatus] = None,
        priority: Optional[Priority] = None,
        assigned_department_id: Optional[UUID] = None,
        assigned_to_id: Optional[UUID] = None,
        updated_by_id: Optional[UUID] = None,
        change_reason: ChangeReason = ChangeReason.NORMAL_PROGRESSION,
        change_source: ChangeSource = ChangeSource.MANUAL,
        sub_status: Optional[str] = None,
        notes: Optional[str] = None,
        internal_notes: Optional[str] = None,
        escalation_reason: Optional[str] = None,
        resolution_type: Optional[ResolutionType] = None,
        resolution_notes: Optional[str] = None,
        public_update: bool = True,
        citizen_notified: bool = True,
        capacity_reserved: bool = False,
        now: Optional[datetime] = None
    ) -> StatusUpdate:
        """
        Apply a change to an issue and append the StatusUpdate describing it.

        Args that are None leave the corresponding issue field unchanged.
        capacity_reserved means the caller already took a slot in the new
        department (see AssignmentService.claim_department).

        Returns:
            The new StatusUpdate (added to the session, not committed)

        Raises:
            NoChangeError: If status, priority and assignment are all unchanged
            UserNotFoundError: If updated_by_id does not match a user
        """
        now = now or datetime.utcnow()

        old_status = issue.status
        old_priority = issue.priority
        old_department_id = issue.assigned_department_id
        old_assignee_id = issue.assigned_to_id

        new_status = _value(status) or old_status
        new_priority = _value(priority) or old_priority
        new_department_id = assigned_department_id or old_department_id
        new_assignee_id = assigned_to_id or old_assignee_id

        status_changed = new_status != old_status
        priority_changed = new_priority != old_priority
        department_changed = new_department_id != old_department_id
        assignee_changed = new_assignee_id != old_assignee_id

        if not (status_changed or priority_changed or department_changed or assignee_changed):
            raise NoChangeError(f"Issue {issue.id} is already in the requested state")

        source = _value(change_source)
        name, role = await self._actor(updated_by_id)

        previous = await self.latest_update(issue.id, before=now)
        time_in_previous_status = None
        if previous is not None:
            time_in_previous_status = int((now - previous.created_at).total_seconds() // 60)

        escalation_level = issue.escalation_level or 0
        if status_changed and new_status == IssueStatus.ESCALATED.value:
            escalation_level = min(escalation_level + 1, MAX_ESCALATION_LEVEL)

        # Resolution type only applies to resolutions
        record_resolution_type = None
        if new_status == IssueStatus.RESOLVED.value:
            record_resolution_type = _value(resolution_type) or ResolutionType.FIXED.value

        record = StatusUpdate(
            issue_id=issue.id,
            status=new_status,
            previous_status=old_status,
            sub_status=sub_status,
            updated_by_id=updated_by_id,
            updated_by_name=name,
            updated_by_role=role,
            change_reason=_value(change_reason),
            change_source=source,
            notes=notes,
            internal_notes=internal_notes,
            assigned_to_id=new_assignee_id,
            assigned_department_id=new_department_id,
            previous_assigned_to_id=old_assignee_id,
            previous_assigned_department_id=old_department_id,
            time_in_previous_status=time_in_previous_status,
            priority=new_priority,
            previous_priority=old_priority,
            priority_changed=priority_changed,
            escalation_level=escalation_level,
            escalation_reason=escalation_reason,
            resolution_type=record_resolution_type,
            resolution_notes=resolution_notes,
            public_update=public_update,
            citizen_notified=citizen_notified,
            sync_status=self._initial_sync_status(),
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)

        await self._apply_capacity(
            old_department_id, new_department_id,
            _is_active(old_status), _is_active(new_status),
            capacity_reserved
        )

        issue.status = new_status
        issue.priority = new_priority
        issue.assigned_department_id = new_department_id
        issue.assigned_to_id = new_assignee_id
        issue.escalation_level = escalation_level
        if new_status == IssueStatus.RESOLVED.value and status_changed:
            issue.actual_resolution_date = now
            if resolution_notes:
                issue.resolution_notes = resolution_notes
        elif not _is_active(old_status) and _is_active(new_status):
            issue.actual_resolution_date = None
        if priority_changed:
            issue.refresh_urgency_score(now)
        issue.last_status_update = now
        await self._touch_department(new_department_id, now)

        logger.info(
            f"Issue {issue.id}: {old_status} -> {new_status} "
            f"({record.get_change_type().value}, reason={record.change_reason})"
        )
        return record

    async def _touch_department(self, department_id: Optional[UUID], now: datetime) -> None:
        if department_id is None:
            return
        department = await self.db.get(Department, department_id)
        if department is not None:
            department.last_status_update = now

    async def _apply_capacity(
        self,
        old_department_id: Optional[UUID],
        new_department_id: Optional[UUID],
        was_active: bool,
        is_active: bool,
        reserved: bool = False
    ) -> None:
        if old_department_id != new_department_id:
            if old_department_id is not None and was_active:
                await self.assignment.decrement_capacity(old_department_id)
            if new_department_id is not None and is_active and not reserved:
                await self.assignment.increment_capacity(new_department_id)
        elif new_department_id is not None:
            if was_active and not is_active:
                await self.assignment.decrement_capacity(new_department_id)
            elif is_active and not was_active:
                await self.assignment.increment_capacity(new_department_id)

    async def mark_duplicate(
        self,
        issue: Issue,
        original: Issue,
        updated_by_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> StatusUpdate:
        """
        Close an issue as a duplicate of another one.

        The issue moves to the duplicate status (freeing its department
        slot) and the original's duplicate_count goes up by one.

        Raises:
            InvalidDuplicateError: If both issues are the same
            NoChangeError: If the issue is already a duplicate
        """
        if issue.id == original.id:
            raise InvalidDuplicateError(f"Issue {issue.id} cannot duplicate itself")

        record = await self.record_change(
            issue,
            status=IssueStatus.DUPLICATE,
            updated_by_id=updated_by_id,
            change_reason=ChangeReason.DUPLICATE_FOUND,
            notes=notes or f"Marked as duplicate of issue {original.id}",
            now=now,
        )
        issue.is_duplicate = True
        issue.original_issue_id = original.id

        await self.db.execute(
            update(Issue)
            .where(Issue.id == original.id)
            .values(duplicate_count=Issue.duplicate_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(original, attribute_names=["duplicate_count"])

        logger.info(f"Issue {issue.id} marked as duplicate of {original.id}")
        return record

    async def delete_issue(self, issue: Issue, now: Optional[datetime] = None) -> Issue:
        """
        Soft-delete an issue.

        An open issue gives its department slot back. The status history
        is kept.
        """
        if issue.is_deleted:
            raise IssueNotFoundError(f"Issue {issue.id} not found")

        if issue.is_open and issue.assigned_department_id is not None:
            await self.assignment.decrement_capacity(issue.assigned_department_id)
        issue.deleted_at = now or datetime.utcnow()

        logger.info(f"Soft-deleted issue {issue.id}")
        return issue

    async def timeline(self, issue_id: UUID, public_only: bool = True) -> List[StatusUpdate]:
        """Live status updates of an issue, oldest first."""
        query = select(StatusUpdate).where(
            StatusUpdate.issue_id == issue_id,
            StatusUpdate.deleted_at.is_(None),
        )
        if public_only:
            query = query.where(StatusUpdate.public_update.is_(True))
        result = await self.db.execute(
            query.order_by(StatusUpdate.created_at.asc(), StatusUpdate.id)
        )
        return list(result.scalars().all())

    async def soft_delete(self, update_id: UUID) -> StatusUpdate:
        record = await self.db.get(StatusUpdate, update_id)
        if record is None or record.deleted_at is not None:
            raise StatusUpdateNotFoundError(f"Status update {update_id} not found")
        record.deleted_at = datetime.utcnow()
        logger.info(f"Soft-deleted status update {update_id} of issue {record.issue_id}")
        return record


def get_status_tracker(db: AsyncSession) -> StatusTracker:
    """Factory function to create a StatusTracker instance."""
    return StatusTracker(db)

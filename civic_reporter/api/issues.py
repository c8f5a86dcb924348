"""
Issue API endpoints for citizens and staff.
"""

import math
from collections import Counter
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.api.deps import get_db, optional_staff, require_staff
from civic_reporter.config import settings
from civic_reporter.models import ChangeReason, ChangeSource, Department, Issue, IssueStatus
from civic_reporter.schemas import (
    DuplicateRequest,
    FeedbackRequest,
    IssueCreate,
    IssueListItem,
    IssueResponse,
    IssueUpdate,
    MessageResponse,
    MyIssueStats,
    MyIssuesResponse,
    NearbyIssue,
    PaginatedResponse,
    StatusChangeRequest,
    StatusUpdateInternal,
    StatusUpdateResponse,
)
from civic_reporter.services import (
    CategoryNotFoundError,
    InvalidDuplicateError,
    IssueIntakeService,
    IssueNotFoundError,
    NoChangeError,
    StatusTracker,
    UserNotFoundError,
)

router = APIRouter(prefix="/issues", tags=["issues"])

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.0
COMMUNITY_DEFAULT_RANGE_KM = 2.0
COMMUNITY_LIMIT = 50

# Issues in these states can no longer be edited
LOCKED_STATUSES = {IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value, IssueStatus.REJECTED.value}

# States in which a citizen may withdraw their own issue
CITIZEN_DELETABLE_STATUSES = {IssueStatus.DRAFT.value, IssueStatus.SUBMITTED.value, IssueStatus.OPEN.value}


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


async def _get_issue_or_404(db: AsyncSession, issue_id: UUID) -> Issue:
    issue = await db.get(Issue, issue_id)
    if not issue or issue.is_deleted:
        raise HTTPException(status_code=404, detail="Issue not found")
    return issue


def _bounding_box(latitude: float, longitude: float, radius_km: float):
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    lng_delta = radius_km / (KM_PER_DEGREE_LAT * max(math.cos(math.radians(latitude)), 0.01))
    return (
        Issue.latitude.between(latitude - lat_delta, latitude + lat_delta),
        Issue.longitude.between(longitude - lng_delta, longitude + lng_delta),
    )


def _with_distance(issue: Issue, distance: float) -> NearbyIssue:
    return NearbyIssue(
        **IssueListItem.model_validate(issue).model_dump(),
        latitude=issue.latitude,
        longitude=issue.longitude,
        distance_km=round(distance, 3)
    )


def _split(value: Optional[str]) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()] if value else []


@router.get("", response_model=PaginatedResponse[IssueListItem])
async def list_issues(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    category_id: Optional[UUID] = None,
    assigned_department_id: Optional[UUID] = None,
    reported_by_id: Optional[UUID] = None,
    city: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """
    List issues with filtering and pagination.

    Supports filtering by:
    - status / priority: Comma-separated values
    - category_id, assigned_department_id, reported_by_id
    - city: Case-insensitive exact match
    - search: Text search in title and description

    Returns paginated results, newest first.
    """
    query = select(Issue)
    count_query = select(func.count()).select_from(Issue)

    # Apply filters
    filters = [Issue.not_deleted()]

    statuses = _split(status_filter)
    if statuses:
        filters.append(Issue.status.in_(statuses))

    priorities = _split(priority)
    if priorities:
        filters.append(Issue.priority.in_(priorities))

    if category_id:
        filters.append(Issue.category_id == category_id)

    if assigned_department_id:
        filters.append(Issue.assigned_department_id == assigned_department_id)

    if reported_by_id:
        filters.append(Issue.reported_by_id == reported_by_id)

    if city:
        filters.append(func.lower(Issue.city) == city.lower())

    if search:
        search_pattern = f"%{search}%"
        filters.append(
            or_(
                Issue.title.ilike(search_pattern),
                Issue.description.ilike(search_pattern)
            )
        )

    query = query.where(and_(*filters))
    count_query = count_query.where(and_(*filters))

    total_result = await db.execute(count_query)
    total = total_result.scalar_one()

    offset = (page - 1) * per_page
    query = query.order_by(Issue.created_at.desc()).offset(offset).limit(per_page)

    result = await db.execute(query)
    issues = result.scalars().all()

    pages = math.ceil(total / per_page) if total > 0 else 0

    return PaginatedResponse(
        items=issues,
        total=total,
        page=page,
        per_page=per_page,
        pages=pages
    )


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    data: IssueCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a new issue.

    The issue is auto-assigned to the best-scoring department for its
    category. If no department can take it, it stays unassigned for
    manual triage.
    """
    try:
        issue, _ = await IssueIntakeService(db).submit(data)
    except CategoryNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.refresh(issue)
    return issue


@router.get("/nearby", response_model=List[NearbyIssue])
async def nearby_issues(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0, le=50),
    include_closed: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    """
    Issues within radius_km of a point, nearest first.

    A bounding box narrows the query; exact distances use the haversine
    formula. Resolved and closed issues are excluded unless include_closed.
    """
    radius = radius_km or settings.NEARBY_DEFAULT_RADIUS_KM

    query = select(Issue).where(
        *_bounding_box(latitude, longitude, radius),
        Issue.not_deleted(),
    )
    if not include_closed:
        query = query.where(
            Issue.status.notin_([IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value])
        )

    result = await db.execute(query)

    nearby = []
    for issue in result.scalars().all():
        distance = haversine_km(latitude, longitude, issue.latitude, issue.longitude)
        if distance <= radius:
            nearby.append(_with_distance(issue, distance))

    nearby.sort(key=lambda item: item.distance_km)
    return nearby[:limit]


@router.get("/community", response_model=List[NearbyIssue])
async def community_issues(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    range_km: float = Query(COMMUNITY_DEFAULT_RANGE_KM, alias="range", gt=0, le=50),
    db: AsyncSession = Depends(get_db)
):
    """
    Community feed: the newest issues of any status within range of a
    point (default 2 km), at most 50.
    """
    result = await db.execute(
        select(Issue)
        .where(*_bounding_box(lat, lng, range_km), Issue.not_deleted())
        .order_by(Issue.created_at.desc())
    )

    feed = []
    for issue in result.scalars().all():
        distance = haversine_km(lat, lng, issue.latitude, issue.longitude)
        if distance <= range_km:
            feed.append(_with_distance(issue, distance))
            if len(feed) == COMMUNITY_LIMIT:
                break
    return feed


@router.get("/my-issues", response_model=MyIssuesResponse)
async def my_issues(
    reported_by_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """A citizen's issues, newest first, with counts by status."""
    result = await db.execute(
        select(Issue)
        .where(Issue.reported_by_id == reported_by_id, Issue.not_deleted())
        .order_by(Issue.created_at.desc())
    )
    issues = result.scalars().all()
    counts = Counter(issue.status for issue in issues)

    return MyIssuesResponse(
        issues=[IssueListItem.model_validate(issue) for issue in issues],
        stats=MyIssueStats(
            total=len(issues),
            submitted=counts[IssueStatus.SUBMITTED.value],
            in_progress=counts[IssueStatus.IN_PROGRESS.value],
            resolved=counts[IssueStatus.RESOLVED.value],
            closed=counts[IssueStatus.CLOSED.value],
        )
    )


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(
    issue_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get a single issue."""
    return await _get_issue_or_404(db, issue_id)


@router.api_route("/{issue_id}", methods=["PUT", "PATCH"], response_model=IssueResponse)
async def update_issue(
    issue_id: UUID,
    data: IssueUpdate,
    is_staff: bool = Depends(optional_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit an issue's title, description or priority.

    Staff may edit any issue; citizens only their own, identified by
    reported_by_id. A priority change is recorded in the timeline.

    Raises:
        403: Not the reporter and not staff
        400: Issue is resolved, closed or rejected
    """
    issue = await _get_issue_or_404(db, issue_id)

    is_reporter = data.reported_by_id is not None and data.reported_by_id == issue.reported_by_id
    if not (is_staff or is_reporter):
        raise HTTPException(status_code=403, detail="Only the reporter or staff can edit this issue")

    if issue.status in LOCKED_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Issue is {issue.status} and can no longer be edited"
        )

    if data.title is not None:
        issue.title = data.title
    if data.description is not None:
        issue.description = data.description

    if data.priority is not None and data.priority.value != issue.priority:
        try:
            await StatusTracker(db).record_change(
                issue,
                priority=data.priority,
                updated_by_id=None if is_staff else data.reported_by_id,
                change_reason=ChangeReason.ADMIN_OVERRIDE if is_staff else ChangeReason.CITIZEN_REQUEST,
                change_source=ChangeSource.MANUAL if is_staff else ChangeSource.WEB_PORTAL,
            )
        except UserNotFoundError as e:
            raise HTTPException(status_code=400, detail=str(e))

    await db.flush()
    await db.refresh(issue)
    return issue


@router.delete("/{issue_id}", response_model=MessageResponse)
async def delete_issue(
    issue_id: UUID,
    reported_by_id: Optional[UUID] = None,
    is_staff: bool = Depends(optional_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Soft-delete an issue.

    Staff may delete any issue. A citizen may withdraw their own issue
    while it is still a draft, submitted or open.

    Raises:
        403: Caller may not delete this issue
    """
    issue = await _get_issue_or_404(db, issue_id)

    if not is_staff:
        is_reporter = reported_by_id is not None and reported_by_id == issue.reported_by_id
        if not (is_reporter and issue.status in CITIZEN_DELETABLE_STATUSES):
            raise HTTPException(status_code=403, detail="You cannot delete this issue")

    await StatusTracker(db).delete_issue(issue)
    await db.flush()
    return MessageResponse(message="Issue deleted")


@router.get("/{issue_id}/status-updates")
async def get_status_updates(
    issue_id: UUID,
    include_internal: bool = False,
    is_staff: bool = Depends(optional_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Timeline of an issue's status updates, oldest first.

    Citizens see public updates only. Staff (X-Staff-Password) may pass
    include_internal=true to see every update with internal notes.
    """
    await _get_issue_or_404(db, issue_id)

    if include_internal and not is_staff:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff password required for internal updates"
        )

    internal = include_internal and is_staff
    records = await StatusTracker(db).timeline(issue_id, public_only=not internal)

    schema = StatusUpdateInternal if internal else StatusUpdateResponse
    return [schema.model_validate(record) for record in records]


@router.post(
    "/{issue_id}/status",
    response_model=StatusUpdateInternal,
    status_code=status.HTTP_201_CREATED
)
async def change_issue_status(
    issue_id: UUID,
    request: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_staff)
):
    """
    Record a status, priority or assignment change for an issue.

    Raises:
        404: Issue or target department not found
        400: Updating user not found
        409: The change would leave the issue as it is
    """
    issue = await _get_issue_or_404(db, issue_id)

    if request.assigned_department_id is not None:
        department = await db.get(Department, request.assigned_department_id)
        if not department:
            raise HTTPException(status_code=404, detail="Department not found")

    try:
        record = await StatusTracker(db).record_change(
            issue,
            status=request.status,
            priority=request.priority,
            assigned_department_id=request.assigned_department_id,
            assigned_to_id=request.assigned_to_id,
            updated_by_id=request.updated_by_id,
            change_reason=request.change_reason,
            change_source=request.change_source,
            sub_status=request.sub_status,
            notes=request.notes,
            internal_notes=request.internal_notes,
            escalation_reason=request.escalation_reason,
            resolution_type=request.resolution_type,
            resolution_notes=request.resolution_notes,
            public_update=request.public_update,
            citizen_notified=request.citizen_notified,
        )
    except NoChangeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.flush()
    return record


@router.post("/{issue_id}/feedback", response_model=IssueResponse)
async def submit_feedback(
    issue_id: UUID,
    feedback: FeedbackRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Rate the handling of a resolved or closed issue (1-5).

    Raises:
        400: Issue is not resolved or closed
        409: Feedback was already given
    """
    issue = await _get_issue_or_404(db, issue_id)

    if issue.status not in (IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value):
        raise HTTPException(
            status_code=400,
            detail="Feedback can only be given on resolved or closed issues"
        )
    if issue.feedback_rating is not None:
        raise HTTPException(status_code=409, detail="Feedback already submitted")

    issue.feedback_rating = feedback.rating
    issue.feedback_comment = feedback.comment
    await db.flush()
    await db.refresh(issue)
    return issue



@router.post("/{issue_id}/duplicate", response_model=IssueResponse)
async def mark_duplicate(
    issue_id: UUID,
    request: DuplicateRequest,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_staff)
):
    """
    Close an issue as a duplicate of another.

    Raises:
        404: Issue or original issue not found
        400: Issue marked as a duplicate of itself, or unknown user
        409: Issue is already a duplicate
    """
    tracker = StatusTracker(db)
    try:
        issue = await tracker.get_issue(issue_id)
        original = await tracker.get_issue(request.original_issue_id)
    except IssueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        await tracker.mark_duplicate(
            issue,
            original,
            updated_by_id=request.updated_by_id,
            notes=request.notes,
        )
    except InvalidDuplicateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoChangeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.flush()
    await db.refresh(issue)
    return issue

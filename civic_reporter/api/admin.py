"""
Admin API endpoints for departments, categories, users and issue triage.

All endpoints require the X-Staff-Password header.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from civic_reporter.api.deps import get_db, require_staff
from civic_reporter.models import (
    Category,
    ChangeReason,
    ChangeSource,
    Department,
    DepartmentCategory,
    Issue,
    TERMINAL_STATUSES,
    User,
)
from civic_reporter.schemas import (
    AssignmentResult,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentStatistics,
    DepartmentUpdate,
    HandledCategory,
    IssueListItem,
    MessageResponse,
    UserCreate,
    UserResponse,
)
from civic_reporter.services import (
    AnalyticsService,
    AssignmentService,
    NoChangeError,
    StatisticsService,
    StatusTracker,
    StatusUpdateNotFoundError,
    UserNotFoundError,
)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_staff)])


class AssignRequest(BaseModel):
    """Manual assignment when department_id is set, otherwise automatic."""
    department_id: Optional[UUID] = None
    assigned_to_id: Optional[UUID] = None
    updated_by_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


async def _load_department(db: AsyncSession, department_id: UUID) -> Department:
    result = await db.execute(
        select(Department)
        .options(selectinload(Department.handled_categories))
        .where(Department.id == department_id)
    )
    department = result.scalar_one_or_none()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


async def _category_links(db: AsyncSession, handled: List[HandledCategory]) -> List[DepartmentCategory]:
    category_ids = {link.category_id for link in handled}
    if len(category_ids) != len(handled):
        raise HTTPException(status_code=400, detail="A category can only be listed once")

    if category_ids:
        result = await db.execute(select(Category.id).where(Category.id.in_(category_ids)))
        missing = category_ids - set(result.scalars().all())
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown categories: {', '.join(sorted(str(c) for c in missing))}"
            )

    return [
        DepartmentCategory(
            category_id=link.category_id,
            is_primary=link.is_primary,
            priority=link.priority
        )
        for link in handled
    ]


# Dashboard

@router.get("/dashboard")
async def get_dashboard(db: AsyncSession = Depends(get_db)):
    """
    Staff dashboard: issue summary, department aggregates and the ten
    most urgent open issues.
    """
    summary = await AnalyticsService(db).summary()
    departments = await StatisticsService(db).get_department_statistics()

    result = await db.execute(
        select(Issue)
        .where(
            Issue.status.notin_([s.value for s in TERMINAL_STATUSES]),
            Issue.not_deleted(),
        )
        .order_by(Issue.urgency_score.desc(), Issue.created_at)
        .limit(10)
    )
    urgent = [IssueListItem.model_validate(issue) for issue in result.scalars().all()]

    return {
        "summary": summary,
        "departments": departments,
        "urgent_issues": urgent,
    }


# Departments

@router.post("/departments", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    data: DepartmentCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a department with the categories it handles.

    Raises:
        409: Name or code already in use
        400: Unknown category
    """
    existing = await db.execute(
        select(Department.id).where(or_(Department.code == data.code, Department.name == data.name))
    )
    if existing.first():
        raise HTTPException(status_code=409, detail="Department name or code already exists")

    links = await _category_links(db, data.handled_categories)
    department = Department(
        **data.model_dump(exclude={"handled_categories", "operational_status"}),
        operational_status=data.operational_status.value,
        handled_categories=links,
    )
    db.add(department)
    await db.flush()

    return await _load_department(db, department.id)


@router.get("/departments", response_model=List[DepartmentResponse])
async def list_departments(
    include_inactive: bool = False,
    category_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db)
):
    """List departments by name, optionally only those handling a category."""
    query = select(Department).options(selectinload(Department.handled_categories))
    if not include_inactive:
        query = query.where(Department.is_active.is_(True))
    if category_id:
        query = query.where(
            Department.handled_categories.any(DepartmentCategory.category_id == category_id)
        )
    result = await db.execute(query.order_by(Department.name))
    return result.scalars().all()


@router.get("/departments/statistics", response_model=DepartmentStatistics)
async def get_departments_statistics(db: AsyncSession = Depends(get_db)):
    """System-wide department aggregates."""
    return await StatisticsService(db).get_department_statistics()


@router.get("/departments/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    return await _load_department(db, department_id)


@router.patch("/departments/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: UUID,
    data: DepartmentUpdate,
    db: AsyncSession = Depends(get_db)
):
    """
    Update a department. Only provided fields change; handled_categories,
    when provided, replaces the whole list.
    """
    department = await _load_department(db, department_id)
    updates = data.model_dump(exclude_unset=True, exclude={"handled_categories"})

    operational_status = updates.pop("operational_status", None)
    if operational_status is not None and operational_status.value != department.operational_status:
        department.operational_status = operational_status.value
        department.last_status_update = datetime.utcnow()

    for field, value in updates.items():
        setattr(department, field, value)

    if data.handled_categories is not None:
        links = await _category_links(db, data.handled_categories)
        department.handled_categories.clear()
        await db.flush()
        department.handled_categories.extend(links)

    await db.flush()
    return await _load_department(db, department_id)


@router.post("/departments/{department_id}/statistics", response_model=DepartmentResponse)
async def refresh_department_statistics(
    department_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Recompute one department's statistics from its issues."""
    department = await _load_department(db, department_id)
    await StatisticsService(db).update_statistics(department)
    await db.flush()
    return department


# Categories

@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db)
):
    existing = await db.execute(
        select(Category.id).where(or_(Category.code == data.code, Category.name == data.name))
    )
    if existing.first():
        raise HTTPException(status_code=409, detail="Category name or code already exists")

    category = Category(
        **data.model_dump(exclude={"default_priority"}),
        default_priority=data.default_priority.value,
    )
    db.add(category)
    await db.flush()
    return category


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db)
):
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(category, field, getattr(value, "value", value))

    await db.flush()
    await db.refresh(category)
    return category


# Users

@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    existing = await db.execute(select(User.id).where(User.email == data.email.lower()))
    if existing.first():
        raise HTTPException(status_code=409, detail="Email already registered")

    if data.department_id and not await db.get(Department, data.department_id):
        raise HTTPException(status_code=400, detail="Department not found")

    user = User(
        full_name=data.full_name,
        email=data.email.lower(),
        phone=data.phone,
        role=data.role.value,
        department_id=data.department_id,
    )
    db.add(user)
    await db.flush()
    return user


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[str] = None,
    department_id: Optional[UUID] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if department_id:
        query = query.where(User.department_id == department_id)
    result = await db.execute(query.order_by(User.full_name).limit(limit))
    return result.scalars().all()


# Issue triage

@router.post("/issues/{issue_id}/assign", response_model=AssignmentResult)
async def assign_issue(
    issue_id: UUID,
    request: AssignRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Assign an issue to a department.

    With department_id the assignment is manual. Without it the
    best-scoring department for the issue's category is chosen, skipping
    the current department and, when capacity is enforced, full ones. If
    no department qualifies the issue is left as it is.

    Raises:
        404: Issue or department not found
        409: Issue is already assigned to that department
    """
    issue = await db.get(Issue, issue_id)
    if not issue or issue.is_deleted:
        raise HTTPException(status_code=404, detail="Issue not found")

    assignment = AssignmentService(db)
    score = None
    reserved = False
    if request.department_id is not None:
        department = await _load_department(db, request.department_id)
        reason = ChangeReason.ASSIGNMENT
        source = ChangeSource.MANUAL
    else:
        ranked = await assignment.rank_candidates(issue.category_id)
        chosen = await assignment.claim_department(
            ranked,
            exclude_id=issue.assigned_department_id,
            reserve=issue.is_open,
        )
        if chosen is None:
            return AssignmentResult(issue_id=issue.id, assigned=False)
        department, score = chosen
        reserved = issue.is_open
        reason = ChangeReason.AUTO_ASSIGNMENT
        source = ChangeSource.SYSTEM

    try:
        await StatusTracker(db, assignment).record_change(
            issue,
            assigned_department_id=department.id,
            assigned_to_id=request.assigned_to_id,
            updated_by_id=request.updated_by_id,
            change_reason=reason,
            change_source=source,
            notes=request.notes,
            capacity_reserved=reserved,
        )
    except NoChangeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AssignmentResult(
        issue_id=issue.id,
        department_id=department.id,
        department_name=department.name,
        score=score,
        assigned=True
    )


@router.delete("/status-updates/{update_id}", response_model=MessageResponse)
async def delete_status_update(
    update_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Soft-delete a status update; it disappears from timelines."""
    try:
        await StatusTracker(db).soft_delete(update_id)
    except StatusUpdateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    await db.flush()
    return MessageResponse(message="Status update deleted")

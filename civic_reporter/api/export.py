"""
Export API endpoints for downloading data as CSV files.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
from sqlalchemy.orm import selectinload
import csv
import io
from typing import Optional
from datetime import date
from uuid import UUID

from civic_reporter.api.deps import get_db, require_staff
from civic_reporter.models import Department, Issue

router = APIRouter(prefix="/export", tags=["export"], dependencies=[Depends(require_staff)])


def _csv_response(output: io.StringIO, name: str) -> StreamingResponse:
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={name}_export_{date.today().isoformat()}.csv"
        }
    )


@router.get("/issues")
async def export_issues(
    status: Optional[str] = None,
    category_id: Optional[UUID] = None,
    assigned_department_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Export issues as CSV.

    Filters:
    - status: Lifecycle status
    - category_id / assigned_department_id
    - start_date/end_date: Creation date range

    CSV columns:
    - Issue ID, Title, Category, Status, Priority, Urgency Score,
      Emergency, Escalation Level, Department, City, Latitude, Longitude,
      Created At, Last Status Update, Resolved At, Feedback Rating
    """
    query = select(Issue).options(
        selectinload(Issue.category),
        selectinload(Issue.assigned_department)
    )

    # Apply filters
    filters = [Issue.not_deleted()]

    if status:
        filters.append(Issue.status == status)

    if category_id:
        filters.append(Issue.category_id == category_id)

    if assigned_department_id:
        filters.append(Issue.assigned_department_id == assigned_department_id)

    if start_date:
        filters.append(func.date(Issue.created_at) >= start_date)

    if end_date:
        filters.append(func.date(Issue.created_at) <= end_date)

    query = query.where(and_(*filters))

    result = await db.execute(query.order_by(Issue.created_at.desc()))
    issues = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        'Issue ID',
        'Title',
        'Category',
        'Status',
        'Priority',
        'Urgency Score',
        'Emergency',
        'Escalation Level',
        'Department',
        'City',
        'Latitude',
        'Longitude',
        'Created At',
        'Last Status Update',
        'Resolved At',
        'Feedback Rating'
    ])

    for issue in issues:
        writer.writerow([
            str(issue.id),
            issue.title,
            issue.category.name,
            issue.status,
            issue.priority,
            issue.urgency_score,
            'yes' if issue.is_emergency else 'no',
            issue.escalation_level,
            issue.assigned_department.code if issue.assigned_department else '',
            issue.city or '',
            issue.latitude,
            issue.longitude,
            issue.created_at.isoformat(),
            issue.last_status_update.isoformat() if issue.last_status_update else '',
            issue.actual_resolution_date.isoformat() if issue.actual_resolution_date else '',
            issue.feedback_rating if issue.feedback_rating is not None else ''
        ])

    return _csv_response(output, "issues")


@router.get("/departments")
async def export_departments(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db)
):
    """
    Export departments with their load and performance metrics as CSV.
    """
    query = select(Department)
    if not include_inactive:
        query = query.where(Department.is_active.is_(True))

    result = await db.execute(query.order_by(Department.name))
    departments = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        'Department ID',
        'Code',
        'Name',
        'Operational Status',
        'Active Issues',
        'Max Active Issues',
        'Workload %',
        'Resolution Rate',
        'Satisfaction',
        'Efficiency Score',
        'Total Handled',
        'Total Resolved',
        'Statistics Updated At'
    ])

    for department in departments:
        writer.writerow([
            str(department.id),
            department.code,
            department.name,
            department.operational_status,
            department.current_active_issues,
            department.max_active_issues,
            department.workload_percentage,
            department.resolution_rate,
            department.citizen_satisfaction_score,
            department.efficiency_score,
            department.total_issues_handled,
            department.total_issues_resolved,
            department.statistics_updated_at.isoformat() if department.statistics_updated_at else ''
        ])

    return _csv_response(output, "departments")

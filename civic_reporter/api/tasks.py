"""
Background tasks API endpoints.

Provides endpoints to:
- View scheduler status and upcoming jobs
- Manually trigger background tasks
- Check task execution status and progress
"""

from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field

from civic_reporter.api.deps import require_staff
from civic_reporter.config import settings
from civic_reporter.tasks import get_job_status, background_worker

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_staff)])


# Response schemas
class JobStatusResponse(BaseModel):
    """Status of a scheduled job."""
    id: str
    name: str
    next_run: Optional[str] = None
    trigger: str


class WorkerStatusResponse(BaseModel):
    """Status of background worker."""
    status: str = Field(..., description="Worker status: idle, running, completed, failed")
    task: Optional[str] = Field(None, description="Name of the current or last task")
    progress: Optional[str] = Field(None, description="Current progress message")
    is_running: bool = Field(..., description="Whether a task is currently executing")
    started_at: Optional[str] = Field(None, description="Task start timestamp (ISO)")
    completed_at: Optional[str] = Field(None, description="Task completion timestamp (ISO)")
    last_result: Optional[dict] = Field(None, description="Result from last completed task")
    last_error: Optional[str] = Field(None, description="Error from last failed task")


class SyncTriggerRequest(BaseModel):
    """Request to trigger an external status sync."""
    include_failed: bool = Field(False, description="Also retry previously failed updates")


class TaskTriggerResponse(BaseModel):
    """Response when triggering a task."""
    message: str
    task: str
    status: str


def _ensure_idle():
    if background_worker.is_running:
        raise HTTPException(
            status_code=400,
            detail="A background task is already running. Please wait for it to complete."
        )


# Endpoints

@router.get("/scheduler/status", response_model=list[JobStatusResponse])
async def get_scheduler_status():
    """
    Get status of all scheduled jobs.

    Example response:
    ```json
    [
        {
            "id": "daily_reset",
            "name": "Daily Capacity Reset",
            "next_run": "2024-01-16T00:00:00",
            "trigger": "cron[hour='0', minute='0']"
        }
    ]
    ```
    """
    return get_job_status()


@router.get("/worker/status", response_model=WorkerStatusResponse)
async def get_worker_status():
    """
    Get current status of background worker.

    Returns the current status, progress message, timestamps and the
    result or error of the last task.
    """
    return background_worker.get_status()


@router.post("/statistics", response_model=TaskTriggerResponse)
async def trigger_statistics_refresh(background_tasks: BackgroundTasks):
    """
    Recompute statistics for all active departments in the background.

    Use GET /api/tasks/worker/status to check progress and results.

    Raises:
        400: If a task is already running
    """
    _ensure_idle()
    background_tasks.add_task(background_worker.run_statistics_refresh)

    return TaskTriggerResponse(
        message="Statistics refresh started",
        task="statistics_refresh",
        status="started"
    )


@router.post("/daily-reset", response_model=TaskTriggerResponse)
async def trigger_daily_reset(background_tasks: BackgroundTasks):
    """
    Reset departments' daily intake counters now.

    Raises:
        400: If a task is already running
    """
    _ensure_idle()
    background_tasks.add_task(background_worker.run_daily_reset)

    return TaskTriggerResponse(
        message="Daily counter reset started",
        task="daily_reset",
        status="started"
    )


@router.post("/sync-status-updates", response_model=TaskTriggerResponse)
async def trigger_status_sync(
    background_tasks: BackgroundTasks,
    request: SyncTriggerRequest = SyncTriggerRequest()
):
    """
    Push pending status updates to the external municipal system.

    Request body:
    ```json
    {
        "include_failed": true  // Optional: retry failed updates too
    }
    ```

    Raises:
        400: If a task is already running or no external endpoint is configured
    """
    if not settings.external_sync_enabled:
        raise HTTPException(status_code=400, detail="External sync is not configured")
    _ensure_idle()

    background_tasks.add_task(background_worker.run_status_sync, request.include_failed)

    return TaskTriggerResponse(
        message="Status sync started",
        task="status_sync",
        status="started"
    )

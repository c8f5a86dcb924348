"""
Background worker for manual task execution.

Provides a BackgroundWorker class so staff can trigger the scheduled
housekeeping jobs on demand via API endpoints, with status tracking.
"""

import logging
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.database import AsyncSessionLocal
from civic_reporter.services import (
    ExternalSyncService,
    get_statistics_service,
    get_sync_client,
)

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """
    Handles background task execution with status tracking.

    Only one task runs at a time.

    Attributes:
        status: Current task status (idle, running, completed, failed)
        progress: Human-readable progress message
        is_running: Whether a task is currently executing
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        """Initialize worker in idle state."""
        self._session_factory = session_factory
        self._current_task: Optional[asyncio.Task] = None
        self._running = False
        self._status = "idle"
        self._progress: Optional[str] = None
        self._last_task: Optional[str] = None
        self._last_result: Optional[Dict[str, Any]] = None
        self._last_error: Optional[str] = None
        self._started_at: Optional[datetime] = None
        self._completed_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        return self._status

    @property
    def progress(self) -> Optional[str]:
        return self._progress

    @property
    def is_running(self) -> bool:
        """Check if a task is currently running."""
        if self._current_task is not None and not self._current_task.done():
            return True
        return self._running

    @property
    def last_result(self) -> Optional[Dict[str, Any]]:
        return self._last_result

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def get_status(self) -> Dict[str, Any]:
        """
        Get complete worker status.

        Returns:
            Dictionary with status, progress, timestamps, and results
        """
        return {
            "status": self._status,
            "task": self._last_task,
            "progress": self._progress,
            "is_running": self.is_running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "completed_at": self._completed_at.isoformat() if self._completed_at else None,
            "last_result": self._last_result,
            "last_error": self._last_error
        }

    def start(self, coro: Awaitable[Dict[str, Any]]) -> asyncio.Task:
        """Run a worker coroutine as a tracked asyncio task."""
        self._current_task = asyncio.create_task(coro)
        return self._current_task

    async def _run(
        self,
        task_name: str,
        progress: str,
        work: Callable[[AsyncSession], Awaitable[Dict[str, Any]]]
    ) -> Dict[str, Any]:
        if self._running:
            raise RuntimeError("A task is already running")

        self._running = True
        self._status = "running"
        self._last_task = task_name
        self._progress = progress
        self._started_at = datetime.utcnow()
        self._completed_at = None
        self._last_result = None
        self._last_error = None

        try:
            async with self._session_factory() as db:
                try:
                    result = await work(db)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

            self._status = "completed"
            self._last_result = result
            logger.info(f"{task_name} completed: {result}")
            return result

        except Exception as e:
            self._status = "failed"
            self._last_error = str(e)
            logger.error(f"{task_name} failed: {e}", exc_info=True)
            raise

        finally:
            self._running = False
            self._progress = None
            self._completed_at = datetime.utcnow()

    async def run_statistics_refresh(self) -> Dict[str, Any]:
        """
        Recompute statistics for all active departments.

        Raises:
            RuntimeError: If a task is already running
        """
        return await self._run(
            "statistics_refresh",
            "Recomputing department statistics...",
            lambda db: get_statistics_service(db).refresh_all()
        )

    async def run_daily_reset(self) -> Dict[str, Any]:
        """
        Zero departments' daily intake counters.

        Raises:
            RuntimeError: If a task is already running
        """
        return await self._run(
            "daily_reset",
            "Resetting daily counters...",
            lambda db: get_statistics_service(db).reset_daily_counters()
        )

    async def run_status_sync(self, include_failed: bool = False) -> Dict[str, Any]:
        """
        Push pending (and optionally failed) status updates to the external system.

        Raises:
            RuntimeError: If a task is already running
            ExternalSyncNotConfiguredError: If no endpoint is configured
        """
        async def sync(db: AsyncSession) -> Dict[str, Any]:
            async with get_sync_client() as client:
                return await ExternalSyncService(db, client).sync_pending(
                    include_failed=include_failed
                )

        return await self._run(
            "status_sync",
            f"Syncing status updates (retry failed: {include_failed})...",
            sync
        )


# Global worker instance (singleton)
background_worker = BackgroundWorker()

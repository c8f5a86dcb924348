"""
Tests for background tasks and scheduler.

Tests the scheduler setup, the scheduled jobs and worker functionality.
"""

import asyncio
import pytest
import httpx
from unittest.mock import AsyncMock, patch
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select

from civic_reporter.models import Department
from civic_reporter.services import MunicipalSyncClient
from civic_reporter.tasks import (
    setup_scheduler,
    shutdown_scheduler,
    get_job_status,
    daily_reset_job,
    statistics_refresh_job,
    status_sync_job,
    BackgroundWorker
)


@pytest.fixture
def fresh_scheduler():
    """A new scheduler per test, bound to the test's event loop."""
    with patch("civic_reporter.tasks.scheduler.scheduler", AsyncIOScheduler()) as scheduler:
        yield scheduler


@pytest.mark.asyncio
class TestScheduler:
    """Test scheduler configuration and management."""

    async def test_setup_scheduler(self, fresh_scheduler):
        """Housekeeping jobs are scheduled; sync is skipped without an endpoint."""
        with patch("civic_reporter.tasks.scheduler.settings") as mock_settings:
            mock_settings.STATISTICS_REFRESH_MINUTES = 60
            mock_settings.external_sync_enabled = False
            setup_scheduler()

        job_ids = {job["id"] for job in get_job_status()}
        assert job_ids == {"daily_reset", "statistics_refresh"}

        shutdown_scheduler()

    async def test_setup_scheduler_with_sync(self, fresh_scheduler):
        with patch("civic_reporter.tasks.scheduler.settings") as mock_settings:
            mock_settings.STATISTICS_REFRESH_MINUTES = 60
            mock_settings.STATUS_SYNC_INTERVAL_MINUTES = 5
            mock_settings.external_sync_enabled = True
            setup_scheduler()

        jobs = {job["id"]: job for job in get_job_status()}
        assert "status_sync" in jobs
        assert jobs["status_sync"]["name"] == "External Status Sync"
        assert jobs["daily_reset"]["next_run"] is not None
        assert "cron" in jobs["daily_reset"]["trigger"]

        shutdown_scheduler()

    async def test_setup_twice_is_harmless(self, fresh_scheduler):
        setup_scheduler()
        setup_scheduler()

        assert len(get_job_status()) >= 2

        shutdown_scheduler()

    async def test_shutdown_scheduler(self, fresh_scheduler):
        """Test scheduler shuts down gracefully."""
        setup_scheduler()
        shutdown_scheduler()
        # Shutdown is dispatched through the event loop
        await asyncio.sleep(0.01)
        assert not fresh_scheduler.running

        # Should be safe to call multiple times
        shutdown_scheduler()


@pytest.mark.asyncio
@pytest.mark.services
class TestScheduledJobs:
    """Test the scheduled job functions against the test database."""

    async def test_daily_reset_job(self, session_factory, create_department):
        department = await create_department(current_daily_issues=5)

        with patch("civic_reporter.tasks.scheduler.AsyncSessionLocal", session_factory):
            result = await daily_reset_job()

        assert result == {"departments_reset": 1}
        async with session_factory() as db:
            value = await db.scalar(
                select(Department.current_daily_issues).where(Department.id == department.id)
            )
        assert value == 0

    async def test_statistics_refresh_job(self, session_factory, create_department):
        await create_department()

        with patch("civic_reporter.tasks.scheduler.AsyncSessionLocal", session_factory):
            result = await statistics_refresh_job()

        assert result == {"departments_updated": 1}

    async def test_job_failure_propagates(self, session_factory):
        failing = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with patch("civic_reporter.tasks.scheduler.AsyncSessionLocal", session_factory), \
             patch("civic_reporter.tasks.scheduler.get_statistics_service") as mock_get_stats:
            mock_get_stats.return_value.refresh_all = failing

            with pytest.raises(RuntimeError, match="database unavailable"):
                await statistics_refresh_job()

    async def test_status_sync_job(
        self, session_factory, create_category, create_issue, create_status_update
    ):
        category = await create_category()
        issue = await create_issue(category.id)
        await create_status_update(issue.id, sync_status="pending")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"reference": "EXT-9"})

        client = MunicipalSyncClient(
            base_url="https://city.example.gov/api/",
            transport=httpx.MockTransport(handler),
        )

        with patch("civic_reporter.tasks.scheduler.AsyncSessionLocal", session_factory), \
             patch("civic_reporter.tasks.scheduler.get_sync_client", return_value=client):
            result = await status_sync_job()

        assert result == {"synced": 1, "failed": 0}


class TestBackgroundWorker:
    """Test background worker functionality."""

    def test_worker_initial_state(self):
        """Test worker starts in idle state."""
        worker = BackgroundWorker()

        assert worker.status == "idle"
        assert worker.progress is None
        assert not worker.is_running
        assert worker.last_result is None
        assert worker.last_error is None

    def test_get_status(self):
        """Test worker status retrieval."""
        status = BackgroundWorker().get_status()

        assert set(status) == {
            "status", "task", "progress", "is_running",
            "started_at", "completed_at", "last_result", "last_error",
        }


@pytest.mark.asyncio
@pytest.mark.services
class TestBackgroundWorkerRuns:
    """Test worker task execution with the test database."""

    async def test_run_daily_reset_success(self, session_factory, create_department):
        await create_department(current_daily_issues=3)
        worker = BackgroundWorker(session_factory=session_factory)

        result = await worker.run_daily_reset()

        assert result == {"departments_reset": 1}
        assert worker.status == "completed"
        assert worker.last_result == result
        assert worker.get_status()["task"] == "daily_reset"
        assert worker.get_status()["completed_at"] is not None

    async def test_run_statistics_refresh_failure(self, session_factory):
        """Test failure handling."""
        worker = BackgroundWorker(session_factory=session_factory)

        with patch("civic_reporter.tasks.worker.get_statistics_service") as mock_get_stats:
            mock_get_stats.return_value.refresh_all = AsyncMock(side_effect=Exception("boom"))

            with pytest.raises(Exception, match="boom"):
                await worker.run_statistics_refresh()

        assert worker.status == "failed"
        assert worker.last_error == "boom"
        assert not worker.is_running

    async def test_prevents_concurrent_runs(self, session_factory):
        worker = BackgroundWorker(session_factory=session_factory)
        release = asyncio.Event()

        async def slow_refresh():
            await release.wait()
            return {"departments_updated": 0}

        with patch("civic_reporter.tasks.worker.get_statistics_service") as mock_get_stats:
            mock_get_stats.return_value.refresh_all = slow_refresh

            task = worker.start(worker.run_statistics_refresh())
            await asyncio.sleep(0)
            assert worker.is_running

            with pytest.raises(RuntimeError, match="already running"):
                await worker.run_daily_reset()

            release.set()
            result = await task

        assert result == {"departments_updated": 0}
        assert not worker.is_running

    async def test_run_status_sync_not_configured(self, session_factory):
        worker = BackgroundWorker(session_factory=session_factory)

        with patch("civic_reporter.config.settings") as mock_settings:
            mock_settings.external_sync_enabled = False
            with pytest.raises(Exception):
                await worker.run_status_sync()

        assert worker.status == "failed"

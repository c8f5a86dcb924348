"""
Background tasks and scheduling module.

Provides:
- Scheduler: Automated periodic jobs (daily reset, statistics refresh, status sync)
- Worker: On-demand background task execution via API
"""

from civic_reporter.tasks.scheduler import (
    scheduler,
    setup_scheduler,
    shutdown_scheduler,
    get_job_status,
    daily_reset_job,
    statistics_refresh_job,
    status_sync_job
)
from civic_reporter.tasks.worker import (
    background_worker,
    BackgroundWorker
)

__all__ = [
    # Scheduler
    "scheduler",
    "setup_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "daily_reset_job",
    "statistics_refresh_job",
    "status_sync_job",
    # Worker
    "background_worker",
    "BackgroundWorker"
]

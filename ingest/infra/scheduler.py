"""
Scheduler infrastructure for the long-running ingest daemon.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from croniter import croniter


logger = logging.getLogger(__name__)


class Scheduler:
    """Async task scheduler wrapper around APScheduler with optional persistence."""

    def __init__(
        self,
        db_url: str = "sqlite:///scheduler_jobs.db",
        timezone: str = "America/Edmonton",
        enable_persistence: bool = False,
    ):
        if enable_persistence:
            # Persisted jobs must reference importable module-level callables
            jobstores = {"default": SQLAlchemyJobStore(url=db_url)}
        else:
            jobstores = {}

        job_defaults = {
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,  # seconds
        }

        self.timezone = timezone
        self._scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            job_defaults=job_defaults,
            timezone=timezone,
        )
        self._persistent = enable_persistence
        self._started = False

    async def start(self) -> None:
        """Start the scheduler."""
        if not self._started:
            self._scheduler.start()
            self._started = True
            logger.info(
                "Scheduler started (%s, persistence %s)",
                self.timezone,
                "enabled" if self._persistent else "disabled",
            )

    async def stop(self) -> None:
        """Stop the scheduler."""
        if self._started:
            self._scheduler.shutdown()
            self._started = False
            logger.info("Scheduler stopped")

    def add_cron_job(
        self,
        func: Callable,
        cron_expression: str,
        job_id: Optional[str] = None,
        args: Sequence[Any] = (),
        **kwargs,
    ) -> None:
        """Add a job that runs on a five-field cron schedule."""
        if not self.validate_cron_expression(cron_expression):
            raise ValueError(f"Invalid cron expression: {cron_expression}")

        trigger = CronTrigger.from_crontab(cron_expression, timezone=self.timezone)
        self._scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            args=list(args),
            replace_existing=True,
            **kwargs,
        )
        logger.info("Added cron job: %s (%s)", job_id or func.__name__, cron_expression)

    @staticmethod
    def validate_cron_expression(cron_expression: str) -> bool:
        """Validate a five-field cron expression using croniter."""
        if len(cron_expression.split()) != 5:
            logger.error("Cron expression must have 5 parts: %r", cron_expression)
            return False
        if not croniter.is_valid(cron_expression):
            logger.error("Invalid cron expression %r", cron_expression)
            return False
        return True

    def list_jobs(self) -> Dict[str, Any]:
        """List all scheduled jobs."""
        jobs = {}
        for job in self._scheduler.get_jobs():
            jobs[job.id] = {
                "name": job.name,
                "next_run": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
        return jobs

"""
Main entry point for the ingest daemon with scheduling support.
"""

import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv

# Add project root to PYTHONPATH so imports work when running this script directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from ingest.config import Settings, load_settings
from ingest.infra.scheduler import Scheduler
from ingest.service import IngestService, scheduled_run


async def main():
    """Main entry point: schedule every source, or run them once."""
    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s"
    )
    logger = logging.getLogger(__name__)

    settings = load_settings()

    if settings.scheduler.mode == "disabled":
        logger.info("Starting ingest (one-time run)...")
        await run_without_scheduler(settings)
        return

    logger.info("Starting ingest daemon with scheduler...")
    scheduler = Scheduler(
        db_url=settings.scheduler.jobstore_url,
        timezone=settings.scheduler.timezone,
        enable_persistence=settings.scheduler.persistence,
    )
    config_path = os.getenv("INGEST_CONFIG")
    for type_, cron in settings.scheduler.jobs.items():
        scheduler.add_cron_job(scheduled_run, cron, job_id=f"ingest-{type_}", args=(type_, config_path))

    # Setup graceful shutdown
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        asyncio.get_running_loop().add_signal_handler(sig, signal_handler)

    try:
        await scheduler.start()
        for job_id, job in scheduler.list_jobs().items():
            logger.info("  - %s: next run %s", job_id, job["next_run"])

        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await scheduler.stop()
        logger.info("Shutdown complete")


async def run_without_scheduler(settings: Settings):
    """Run every source once, honouring the interval gate."""
    logger = logging.getLogger(__name__)
    async with IngestService.from_settings(settings) as service:
        for result in await service.run_all():
            logger.info("%s: %s - %s", result.type, result.status, result.message)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()

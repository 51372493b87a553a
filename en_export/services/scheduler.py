"""
APScheduler service for running the export on a cron schedule.

Runs one export job per trigger for the previous day (UTC), in the
foreground, until interrupted. Intended for hosts without an external
cron; each trigger behaves exactly like a one-off `run`.
"""

import logging
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from en_export.config.models import ExportConfig
from en_export.dates import DateRange
from en_export.services.export_job import ExportJob, JobResult

logger = logging.getLogger(__name__)

JOB_ID = "daily_export"


def execute_scheduled_export(config: ExportConfig) -> Optional[JobResult]:
    """
    Callback executed by APScheduler when the schedule triggers.

    Args:
        config: ExportConfig for the run

    Returns:
        JobResult of the run, or None if the job could not be built
    """
    logger.info("Executing scheduled export")

    try:
        job = ExportJob(config)
    except Exception as e:
        logger.error(f"Scheduled export could not start: {e}", exc_info=True)
        return None

    result = job.run(DateRange.from_dates())
    logger.info(f"Scheduled export {result.job_id} finished, success={result.success}")
    return result


class ExportScheduler:
    """
    Foreground scheduler for the export job.

    Example:
        ```python
        scheduler = ExportScheduler(config, cron="0 6 * * *")
        scheduler.start()  # blocks
        ```
    """

    def __init__(self, config: ExportConfig, cron: str, timezone: str = "UTC"):
        """
        Initialize the scheduler.

        Args:
            config: ExportConfig passed to every run
            cron: Standard 5-field crontab expression
            timezone: Timezone the cron expression is evaluated in

        Raises:
            ValueError: If the cron expression is invalid
        """
        self.config = config
        self.trigger = CronTrigger.from_crontab(cron, timezone=timezone)
        self.scheduler = BlockingScheduler(
            job_defaults={
                'coalesce': True,           # Combine missed runs
                'max_instances': 1,         # No overlapping
                'misfire_grace_time': 300,  # 5 min grace period
            }
        )
        self.scheduler.add_job(
            execute_scheduled_export,
            trigger=self.trigger,
            id=JOB_ID,
            name="Data export",
            kwargs={'config': config},
            replace_existing=True,
        )

    def start(self) -> None:
        """Start the scheduler; blocks until shutdown or interrupt."""
        logger.info(f"Scheduler started with trigger {self.trigger}")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler interrupted")

    def shutdown(self) -> None:
        """Shutdown the scheduler, waiting for a running export to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shutdown complete")

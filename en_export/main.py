"""
Command line entry point for the data export job.

Run with:
    en-export run                      # yesterday (UTC)
    en-export run --from 2024-01-01 --to 2024-01-31
    en-export schedule --cron "0 6 * * *"
    en-export check

Configuration comes from environment variables (and .env), or from
a YAML file given with --config.
"""

import argparse
import logging
import os
import sys
from datetime import date, datetime
from typing import List, Optional

from dotenv import load_dotenv

from en_export.config import ConfigError, ExportConfig, load_config
from en_export.dates import DateRange
from en_export.services.export_job import ExportJob
from en_export.services.upload import UploadError, create_uploader
from en_export.sharepoint.auth import AuthError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_FORMAT = "%(asctime)s %(message)s"
LOG_FILE_DATE_FORMAT = "%B %Y %I:%M:%S %p"

logger = logging.getLogger(__name__)


def ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


class LogFileFormatter(logging.Formatter):
    """Timestamps log file lines as e.g. "Monday 15th January 2024 06:00:00 AM"."""

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created)
        day = f"{moment.day}{ordinal_suffix(moment.day)}"
        return f"{moment:%A} {day} {moment.strftime(datefmt or LOG_FILE_DATE_FORMAT)}"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure console logging."""
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format=LOG_FORMAT,
    )


def add_log_file(path: str) -> logging.Handler:
    """
    Append warnings and errors to a log file.

    Args:
        path: Log file location

    Returns:
        The installed handler
    """
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.WARNING)
    handler.setFormatter(LogFileFormatter(LOG_FILE_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="en-export",
        description="Download a data export and upload it to SFTP or SharePoint.",
    )
    parser.add_argument("--config", help="YAML configuration file (default: environment variables)")
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the export once")
    run_parser.add_argument("--from", dest="date_from", type=parse_date,
                            help="First day to export (default: yesterday, UTC)")
    run_parser.add_argument("--to", dest="date_to", type=parse_date,
                            help="Last day to export (default: yesterday, UTC)")

    schedule_parser = subparsers.add_parser("schedule", help="Run the export on a cron schedule")
    schedule_parser.add_argument("--cron", required=True, help='Crontab expression, e.g. "0 6 * * *"')
    schedule_parser.add_argument("--timezone", default="UTC", help="Timezone for the cron expression")

    subparsers.add_parser("check", help="Check the upload target credentials")

    return parser


def command_run(config: ExportConfig, args: argparse.Namespace) -> int:
    date_range = DateRange.from_dates(args.date_from, args.date_to)
    if date_range.date_from > date_range.date_to:
        logger.warning(f"Start date {date_range.date_from} is after end date {date_range.date_to}")

    result = ExportJob(config).run(date_range)

    print("Success!" if result.success else "Fail!")
    return 0 if result.success else 1


def command_schedule(config: ExportConfig, args: argparse.Namespace) -> int:
    from en_export.services.scheduler import ExportScheduler

    try:
        scheduler = ExportScheduler(config, cron=args.cron, timezone=args.timezone)
    except ValueError as e:
        logger.error(f"Invalid schedule: {e}")
        return 2

    scheduler.start()
    return 0


def command_check(config: ExportConfig, args: argparse.Namespace) -> int:
    uploader = create_uploader(config)
    try:
        uploader.check()
    except (AuthError, UploadError) as e:
        logger.error(f"Upload target check failed: {e}")
        print("Fail!")
        return 1

    print("Success!")
    return 0


COMMANDS = {
    "run": command_run,
    "schedule": command_schedule,
    "check": command_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    setup_logging(args.log_level)

    # Installed before the config loads so configuration errors reach the file too
    env_log_file = os.getenv("LOG_FILE_LOCATION")
    if env_log_file:
        add_log_file(env_log_file)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(str(e))
        print("Fail!")
        return 1

    if config.notification.log_file and config.notification.log_file != env_log_file:
        add_log_file(config.notification.log_file)

    return COMMANDS[args.command](config, args)


if __name__ == "__main__":
    sys.exit(main())

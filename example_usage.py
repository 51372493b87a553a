"""
Example usage of the data export modules.

This script demonstrates how to use the modules directly instead of
the `en-export` command: load configuration, check the upload target,
and export a month of data.

Prerequisites:
1. Create a .env file based on .env.example
2. Set the export service URL, token and upload target credentials

Usage:
    python example_usage.py
"""

import logging
from datetime import date

from en_export.config import ConfigError, load_config
from en_export.dates import DateRange
from en_export.services.export_job import ExportJob
from en_export.services.upload import UploadError, create_uploader
from en_export.sharepoint.auth import AuthError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def example_check_target(config):
    """Verify the upload target credentials without uploading."""
    logger.info(f"Checking {config.target} upload target...")

    try:
        create_uploader(config).check()
    except (AuthError, UploadError) as e:
        logger.error(f"Upload target check failed: {e}")
        return False

    logger.info("Upload target reachable")
    return True


def example_month_export(config):
    """Export January 2024 as a single file named 20240101-20240131<ext>."""
    logger.info("\n--- Monthly Export Example ---")

    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 31))
    result = ExportJob(config).run(date_range)

    logger.info(f"Status: {result.status.value}")
    logger.info(f"File: {result.filename}")
    if result.errors:
        logger.info(f"Errors: {result.errors}")

    return result.success


def main():
    """Run all examples."""
    logger.info("=" * 60)
    logger.info("Data Export - Example Usage")
    logger.info("=" * 60)

    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"\n{e}\nPlease check your .env file.")
        return

    if not example_check_target(config):
        logger.error("\nPlease check the upload target settings in your .env file.")
        return

    example_month_export(config)

    logger.info("\n" + "=" * 60)
    logger.info("Examples completed!")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()

"""
Export job orchestration service.

This module coordinates one export run:
1. Download the export for the date range
2. Authenticate to the upload target (SharePoint only)
3. Upload the payload under the date-derived filename
4. Notify the operator of the outcome

Any failing stage ends the run; nothing after it is executed.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import httpx

from en_export.config.models import ExportConfig
from en_export.dates import DateRange
from en_export.services.fetcher import DownloadError, fetch_export
from en_export.services.notifier import (
    STAGE_AUTH,
    STAGE_DOWNLOAD,
    STAGE_UPLOAD,
    Notifier,
)
from en_export.services.upload import Uploader, UploadError, create_uploader
from en_export.sharepoint.auth import AuthError

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of an export job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobResult:
    """
    Result of an export job.

    Attributes:
        job_id: Unique identifier for this job
        date_label: Exported date range (MMDDYYYY-MMDDYYYY)
        target: Upload backend name
        status: Final job status
        filename: Name the payload was (or would have been) stored under
        failed_stage: download, auth or upload when the job failed
        bytes_uploaded: Size of the stored payload
        started_at: Job start timestamp
        completed_at: Job completion timestamp
        errors: Error messages
    """
    job_id: str
    date_label: str
    target: str
    status: JobStatus = JobStatus.PENDING
    filename: Optional[str] = None
    failed_stage: Optional[str] = None
    bytes_uploaded: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == JobStatus.COMPLETED

    @property
    def duration_seconds(self) -> Optional[float]:
        """Job duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "job_id": self.job_id,
            "date_range": self.date_label,
            "target": self.target,
            "status": self.status.value,
            "filename": self.filename,
            "failed_stage": self.failed_stage,
            "bytes_uploaded": self.bytes_uploaded,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


class ExportJob:
    """
    Runs the download and upload of one export.

    Example:
        ```python
        config = load_config()
        job = ExportJob(config)
        result = job.run(DateRange.from_dates())
        print("Success!" if result.success else "Fail!")
        ```
    """

    def __init__(
        self,
        config: ExportConfig,
        notifier: Optional[Notifier] = None,
        uploader: Optional[Uploader] = None,
        http_client: Optional[httpx.Client] = None,
        job_id: Optional[str] = None,
    ):
        """
        Initialize export job.

        Args:
            config: ExportConfig for the run
            notifier: Optional Notifier (built from config.notification otherwise)
            uploader: Optional Uploader (built from config.target otherwise)
            http_client: Optional client for the download
            job_id: Optional custom job ID (auto-generated if not provided)
        """
        self.config = config
        self.notifier = notifier or Notifier(config.notification)
        self.uploader = uploader or create_uploader(config)
        self.http_client = http_client
        self.job_id = job_id or str(uuid.uuid4())

    def run(self, date_range: DateRange) -> JobResult:
        """
        Run the export for a date range.

        Args:
            date_range: Days to export

        Returns:
            JobResult; status is COMPLETED only when the download held no
            error marker and the upload succeeded
        """
        result = JobResult(
            job_id=self.job_id,
            date_label=date_range.label(),
            target=self.uploader.name,
            started_at=datetime.now(timezone.utc),
            status=JobStatus.RUNNING,
            filename=date_range.filename(self.config.file_extension),
        )

        logger.info(f"Starting export job {self.job_id} for {result.date_label} -> {result.target}")

        stage = STAGE_DOWNLOAD
        try:
            payload = fetch_export(self.config.download, date_range, client=self.http_client)

            stage = STAGE_UPLOAD
            data = payload.encode("utf-8")
            self.uploader.store(result.filename, data)
            result.bytes_uploaded = len(data)
            result.status = JobStatus.COMPLETED

        except DownloadError as e:
            self._fail(result, STAGE_DOWNLOAD, str(e))
        except AuthError as e:
            self._fail(result, STAGE_AUTH, str(e))
        except UploadError as e:
            self._fail(result, STAGE_UPLOAD, str(e))
        except Exception as e:
            logger.error(f"Unexpected error during {stage}: {e}", exc_info=True)
            self._fail(result, stage, f"Job failed: {e}")

        result.completed_at = datetime.now(timezone.utc)

        logger.info(
            f"Job {self.job_id} finished: status={result.status.value}, "
            f"file={result.filename}, bytes={result.bytes_uploaded}"
        )

        if result.success:
            self.notifier.notify_success(
                f"Export for {result.date_label} uploaded as {result.filename}",
                result.to_dict(),
            )
        else:
            self.notifier.notify_failure(result.failed_stage, result.errors[-1], result.to_dict())

        return result

    def _fail(self, result: JobResult, stage: str, message: str) -> None:
        result.status = JobStatus.FAILED
        result.failed_stage = stage
        result.errors.append(message)


def run_export(config: ExportConfig, date_range: Optional[DateRange] = None) -> JobResult:
    """
    Convenience function to run an export job.

    Args:
        config: ExportConfig for the run
        date_range: Days to export (yesterday in UTC if omitted)

    Returns:
        JobResult with status
    """
    job = ExportJob(config)
    return job.run(date_range or DateRange.from_dates())

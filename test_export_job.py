"""End-to-end tests for the export job."""

from datetime import date
from unittest import mock

import httpx
import paramiko
import pytest

from en_export.dates import DateRange
from en_export.services.export_job import ExportJob, JobStatus
from en_export.config import NotificationConfig
from en_export.services.notifier import Notifier
from en_export.services.upload import Uploader, UploadError
from en_export.sftp import SFTPUploader
from en_export.sharepoint import SharePointUploader

CSV = "supporter_id,email\n1,a@example.org\n"


class RecordingUploader(Uploader):
    name = "recording"

    def __init__(self, error=None):
        self.error = error
        self.stored = []

    def store(self, filename, payload):
        if self.error:
            raise self.error
        self.stored.append((filename, payload))


@pytest.fixture
def notifier():
    return mock.create_autospec(Notifier, instance=True)


def export_client(make_client, body=CSV, status=200):
    return make_client(lambda request: httpx.Response(status, text=body))


def test_single_day_sftp_export(sftp_export_config, notifier, make_client):
    with mock.patch.object(paramiko, "Transport"), \
            mock.patch.object(paramiko.SFTPClient, "from_transport") as from_transport:
        job = ExportJob(
            sftp_export_config,
            notifier=notifier,
            uploader=SFTPUploader(sftp_export_config.sftp),
            http_client=export_client(make_client),
        )
        result = job.run(DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.status == JobStatus.COMPLETED
    assert result.success
    assert result.filename == "20240115.csv"
    assert result.bytes_uploaded == len(CSV)
    assert from_transport.return_value.putfo.call_args[0][1] == "incoming/20240115.csv"
    notifier.notify_success.assert_called_once()
    assert "01152024-01152024" in notifier.notify_success.call_args[0][0]
    notifier.notify_failure.assert_not_called()


def test_date_range_export_filename(sftp_export_config, notifier, make_client):
    config = sftp_export_config.model_copy(update={"file_extension": ".txt"})
    uploader = RecordingUploader()

    result = ExportJob(config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client)).run(
        DateRange(date(2024, 1, 1), date(2024, 1, 31)))

    assert result.success
    assert uploader.stored == [("20240101-20240131.txt", CSV.encode("utf-8"))]


def test_error_payload_fails_without_upload(sftp_export_config, notifier, make_client):
    uploader = RecordingUploader()

    result = ExportJob(sftp_export_config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client, body="ERROR: no data")).run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.status == JobStatus.FAILED
    assert result.failed_stage == "download"
    assert uploader.stored == []
    notifier.notify_failure.assert_called_once()
    assert notifier.notify_failure.call_args[0][0] == "download"
    notifier.notify_success.assert_not_called()


def test_http_error_fails_download(sftp_export_config, notifier, make_client):
    uploader = RecordingUploader()

    result = ExportJob(sftp_export_config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client, status=503)).run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.failed_stage == "download"
    assert "HTTP 503" in result.errors[0]
    assert uploader.stored == []


def test_upload_failure_fails_job(sftp_export_config, notifier, make_client):
    uploader = RecordingUploader(error=UploadError("Upload error: could not upload file to SFTP site."))

    result = ExportJob(sftp_export_config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client)).run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.status == JobStatus.FAILED
    assert result.failed_stage == "upload"
    notifier.notify_failure.assert_called_once_with(
        "upload", "Upload error: could not upload file to SFTP site.", result.to_dict())


def test_sharepoint_auth_failure_fails_job_without_write(sharepoint_export_config, notifier, make_client):
    requests = []

    def sharepoint(request):
        requests.append(request)
        return httpx.Response(500, text="<html>down</html>")

    uploader = SharePointUploader(sharepoint_export_config.sharepoint, client=make_client(sharepoint))

    result = ExportJob(sharepoint_export_config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client)).run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.status == JobStatus.FAILED
    assert result.failed_stage == "auth"
    assert [r.url.host for r in requests] == ["login.microsoftonline.com"]
    assert notifier.notify_failure.call_args[0][0] == "auth"


def test_result_to_dict(sftp_export_config, notifier, make_client):
    result = ExportJob(sftp_export_config, notifier=notifier, uploader=RecordingUploader(),
                       http_client=export_client(make_client), job_id="job-1").run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    data = result.to_dict()
    assert data["job_id"] == "job-1"
    assert data["status"] == "completed"
    assert data["date_range"] == "01152024-01152024"
    assert data["target"] == "recording"
    assert data["duration_seconds"] >= 0


def test_malformed_webhook_url_keeps_completed_result(sftp_export_config, make_client):
    notifier = Notifier(NotificationConfig(webhook_url="http://[::1"))
    uploader = RecordingUploader()

    result = ExportJob(sftp_export_config, notifier=notifier, uploader=uploader,
                       http_client=export_client(make_client)).run(
        DateRange(date(2024, 1, 15), date(2024, 1, 15)))

    assert result.status == JobStatus.COMPLETED
    assert uploader.stored == [("20240115.csv", CSV.encode("utf-8"))]

"""Tests for the command line entry point."""

import logging
from datetime import date, datetime
from unittest import mock

import pytest

from en_export import main as cli
from en_export.dates import DateRange
from en_export.services.export_job import JobResult, JobStatus
from en_export.sharepoint.auth import AuthError

CONFIG_YAML = """\
target: sftp
file_extension: .csv
download:
  url: https://export.example.org/export.service
  token: abc
sftp:
  host: sftp.example.org
  username: exports
  password: pw
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "export.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return str(path)


def job_result(status):
    return JobResult(job_id="j", date_label="01152024-01152024", target="sftp", status=status)


def test_run_prints_success(config_file, capsys):
    with mock.patch.object(cli, "ExportJob") as export_job:
        export_job.return_value.run.return_value = job_result(JobStatus.COMPLETED)
        exit_code = cli.main(["--config", config_file, "run", "--from", "2024-01-15", "--to", "2024-01-15"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "Success!"
    export_job.return_value.run.assert_called_once_with(DateRange(date(2024, 1, 15), date(2024, 1, 15)))


def test_run_prints_fail(config_file, capsys):
    with mock.patch.object(cli, "ExportJob") as export_job:
        export_job.return_value.run.return_value = job_result(JobStatus.FAILED)
        exit_code = cli.main(["--config", config_file, "run"])

    assert exit_code == 1
    assert capsys.readouterr().out.strip() == "Fail!"


def test_invalid_config_prints_fail(tmp_path, capsys):
    path = tmp_path / "broken.yaml"
    path.write_text("download: {}\n", encoding="utf-8")

    assert cli.main(["--config", str(path), "run"]) == 1
    assert capsys.readouterr().out.strip() == "Fail!"


def test_invalid_date_is_rejected(config_file):
    with pytest.raises(SystemExit):
        cli.main(["--config", config_file, "run", "--from", "15/01/2024"])


def test_check_reports_auth_failure(config_file, capsys):
    with mock.patch.object(cli, "create_uploader") as create_uploader:
        create_uploader.return_value.check.side_effect = AuthError("no token")
        assert cli.main(["--config", config_file, "check"]) == 1

    assert capsys.readouterr().out.strip() == "Fail!"


def test_log_file_receives_errors(tmp_path):
    log_path = tmp_path / "export.log"
    handler = cli.add_log_file(str(log_path))
    try:
        logging.getLogger("en_export.test").error("Upload error: could not log in to SFTP site.")
        logging.getLogger("en_export.test").info("not written")
    finally:
        logging.getLogger().removeHandler(handler)
        handler.close()

    content = log_path.read_text(encoding="utf-8")
    assert "Upload error: could not log in to SFTP site." in content
    assert "not written" not in content


@pytest.mark.parametrize("day, suffix", [
    (1, "st"), (2, "nd"), (3, "rd"), (4, "th"), (11, "th"), (12, "th"),
    (13, "th"), (21, "st"), (22, "nd"), (23, "rd"), (31, "st"),
])
def test_ordinal_suffix(day, suffix):
    assert cli.ordinal_suffix(day) == suffix


def test_log_file_timestamp_has_ordinal_day():
    record = logging.LogRecord("en_export", logging.ERROR, __file__, 1, "Download error", None, None)
    record.created = datetime(2024, 1, 15, 6, 0, 0).timestamp()

    line = cli.LogFileFormatter(cli.LOG_FILE_FORMAT).format(record)

    assert line == "Monday 15th January 2024 06:00:00 AM Download error"


def test_config_error_is_written_to_log_file(tmp_path, monkeypatch, capsys):
    log_path = tmp_path / "export.log"
    monkeypatch.setenv("LOG_FILE_LOCATION", str(log_path))
    config_path = tmp_path / "broken.yaml"
    config_path.write_text("download: {}\n", encoding="utf-8")

    root = logging.getLogger()
    before = list(root.handlers)
    try:
        assert cli.main(["--config", str(config_path), "run"]) == 1
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()

    assert capsys.readouterr().out.strip() == "Fail!"
    assert "Invalid configuration" in log_path.read_text(encoding="utf-8")

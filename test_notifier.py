"""Tests for operator notifications."""

import smtplib
from unittest import mock

import pytest

from en_export.config.models import NotificationConfig
from en_export.services import notifier as notifier_module
from en_export.services.notifier import Notifier, send_email, send_webhook


@pytest.fixture
def notification_config():
    return NotificationConfig(
        error_email="ops@example.org",
        download_subject="Download failed",
        download_message="Check the export service.",
        upload_subject="Upload failed",
        upload_message="Check the upload target.",
    )


@pytest.fixture
def smtp():
    with mock.patch.object(notifier_module.smtplib, "SMTP") as smtp_cls:
        yield smtp_cls


def sent_message(smtp_cls):
    return smtp_cls.return_value.__enter__.return_value.send_message.call_args[0][0]


def test_download_failure_uses_download_email(notification_config, smtp, caplog):
    Notifier(notification_config).notify_failure("download", "Download error: HTTP 500")

    message = sent_message(smtp)
    assert message["To"] == "ops@example.org"
    assert message["Subject"] == "Download failed"
    assert message.get_content().strip() == "Check the export service."
    assert "Download error: HTTP 500" in caplog.text


@pytest.mark.parametrize("stage", ["auth", "upload"])
def test_auth_and_upload_failures_use_upload_email(notification_config, smtp, stage):
    Notifier(notification_config).notify_failure(stage, "failed")

    assert sent_message(smtp)["Subject"] == "Upload failed"


def test_no_email_without_recipient(smtp):
    assert send_email(NotificationConfig(), "s", "b") is False
    smtp.assert_not_called()


def test_smtp_failure_is_logged_not_raised(notification_config, smtp, caplog):
    smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")

    assert send_email(notification_config, "s", "b") is False
    assert "Failed to send notification email" in caplog.text


def test_starttls_and_login(notification_config, smtp):
    config = notification_config.model_copy(update={
        "smtp_starttls": True,
        "smtp_username": "relay",
        "smtp_password": "pw",
    })

    assert send_email(config, "s", "b") is True

    session = smtp.return_value.__enter__.return_value
    session.starttls.assert_called_once()
    session.login.assert_called_once_with("relay", "pw")


def test_webhook_receives_result(notification_config, smtp):
    config = notification_config.model_copy(update={"webhook_url": "https://hooks.example.org/export"})

    with mock.patch.object(notifier_module, "send_webhook") as send_webhook:
        Notifier(config).notify_success("done", {"status": "completed"})
        Notifier(config).notify_failure("upload", "failed", {"status": "failed"})

    assert send_webhook.call_args_list == [
        mock.call("https://hooks.example.org/export", {"status": "completed"}),
        mock.call("https://hooks.example.org/export", {"status": "failed"}),
    ]


def test_webhook_with_malformed_url_returns_false():
    assert send_webhook("http://[::1", {"status": "completed"}) is False

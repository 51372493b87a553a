"""
Operator notifications for export runs.

Failures are logged (console and the log file configured in main.py)
and emailed to the configured address. When a webhook URL is set,
the job result is also POSTed there as JSON. A notification that
cannot be delivered is logged and never changes the job outcome.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

import httpx

from en_export.config.models import NotificationConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds

STAGE_DOWNLOAD = "download"
STAGE_AUTH = "auth"
STAGE_UPLOAD = "upload"


def send_email(config: NotificationConfig, subject: str, body: str) -> bool:
    """
    Send a plain-text email through the configured SMTP relay.

    Args:
        config: NotificationConfig with SMTP settings and recipient
        subject: Message subject
        body: Message body

    Returns:
        True if the message was handed to the relay, False otherwise
    """
    if not config.error_email:
        logger.debug("No error email configured, skipping email notification")
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config.from_email
    message["To"] = config.error_email
    message.set_content(body)

    try:
        with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=DEFAULT_TIMEOUT) as smtp:
            if config.smtp_starttls:
                smtp.starttls()
            if config.smtp_username:
                smtp.login(config.smtp_username, config.smtp_password or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send notification email to {config.error_email}: {e}")
        return False

    logger.info(f"Notification email sent to {config.error_email}")
    return True


def send_webhook(url: str, data: dict, timeout: int = DEFAULT_TIMEOUT) -> bool:
    """
    POST a job result to a webhook URL.

    Args:
        url: Callback URL to POST to
        data: JSON-serializable job result
        timeout: Request timeout in seconds

    Returns:
        True if webhook sent successfully, False otherwise
    """
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                url,
                json=data,
                headers={"Content-Type": "application/json"},
            )
    except httpx.TimeoutException as e:
        logger.warning(f"Webhook timeout: {e}")
        return False
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"Webhook request error: {e}")
        return False

    if response.status_code >= 200 and response.status_code < 300:
        logger.info(f"Webhook sent successfully to {url} (status: {response.status_code})")
        return True

    logger.warning(f"Webhook returned non-success status: {response.status_code}")
    return False


class Notifier:
    """Routes job outcomes to the log, email and webhook."""

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or NotificationConfig()

    def notify_failure(self, stage: str, message: str, result: Optional[dict] = None) -> None:
        """
        Report a failed stage.

        Download failures use the download subject and body; auth and
        upload failures share the upload pair.
        """
        logger.error(message)

        if stage == STAGE_DOWNLOAD:
            subject, body = self.config.download_subject, self.config.download_message
        else:
            subject, body = self.config.upload_subject, self.config.upload_message
        send_email(self.config, subject, body)

        if self.config.webhook_url and result is not None:
            send_webhook(self.config.webhook_url, result)

    def notify_success(self, message: str, result: Optional[dict] = None) -> None:
        logger.info(message)

        if self.config.webhook_url and result is not None:
            send_webhook(self.config.webhook_url, result)

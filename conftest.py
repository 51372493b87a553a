"""Shared fixtures for the export job tests."""

import httpx
import pytest

from en_export.config.models import (
    DownloadConfig,
    ExportConfig,
    NotificationConfig,
    SFTPConfig,
    SharePointConfig,
)

DATA_URL = "https://export.example.org/ea-dataservice/export.service"
TENANT_URL = "https://contoso.sharepoint.com"
SITE_URL = "https://contoso.sharepoint.com/sites/data"


def _mock_client(handler, **kwargs) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def make_client():
    """Factory for httpx clients whose requests are answered by a handler."""
    return _mock_client


@pytest.fixture
def download_config():
    return DownloadConfig(url=DATA_URL, token="secret-token", format="csv")


@pytest.fixture
def sftp_config():
    return SFTPConfig(
        host="sftp.example.org",
        username="exports",
        password="hunter2",
        remote_path="incoming",
    )


@pytest.fixture
def sharepoint_config():
    return SharePointConfig(
        username="svc@contoso.com",
        password="p@ss<word>",
        tenant_url=TENANT_URL,
        site_url=SITE_URL,
        list_name="Documents",
    )


@pytest.fixture
def sftp_export_config(download_config, sftp_config):
    return ExportConfig(
        download=download_config,
        target="sftp",
        sftp=sftp_config,
        file_extension=".csv",
        notification=NotificationConfig(),
    )


@pytest.fixture
def sharepoint_export_config(download_config, sharepoint_config):
    return ExportConfig(
        download=download_config,
        target="sharepoint",
        sharepoint=sharepoint_config,
        file_extension=".csv",
    )

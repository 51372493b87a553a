"""
SharePoint document library upload.

Authenticates with the claims-based handshake (auth.py) and writes
the payload through the list's rootfolder/files/add REST endpoint.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from en_export.config.models import SharePointConfig
from en_export.services.upload import Uploader, UploadError
from en_export.sharepoint.auth import AuthSession, authenticate, build_sharepoint_client

logger = logging.getLogger(__name__)


def _odata_literal(value: str) -> str:
    """Quote a value for use inside a '...' OData string literal in a URL path."""
    return quote(value.replace("'", "''"), safe="")


def build_upload_url(config: SharePointConfig, filename: str) -> str:
    """
    Build the file write endpoint for a filename.

    Args:
        config: SharePointConfig with site URL, list name and path template
        filename: Name of the file to create or overwrite

    Returns:
        Absolute URL of the files/add call
    """
    path = config.upload_path_template.format(
        list_name=_odata_literal(config.list_name),
        filename=_odata_literal(filename),
    )
    return config.site_url.rstrip("/") + path


def upload_file(
    client: httpx.Client,
    config: SharePointConfig,
    session: AuthSession,
    filename: str,
    payload: bytes,
) -> httpx.Response:
    """
    POST the payload to the document library.

    Raises:
        UploadError: If the call fails or SharePoint returns an error status
    """
    url = build_upload_url(config, filename)
    headers = {
        "Cookie": session.cookie_header(),
        "X-RequestDigest": session.digest,
        "Accept": "application/json;odata=verbose",
        "Content-Type": "application/octet-stream",
    }

    try:
        response = client.post(url, content=payload, headers=headers)
    except httpx.HTTPError as e:
        raise UploadError(f"Upload error: could not upload file to SharePoint: {e}") from e

    if response.is_error:
        raise UploadError(
            f"Upload error: SharePoint returned HTTP {response.status_code} for {filename}"
        )

    return response


class SharePointUploader(Uploader):
    """
    Uploader writing the export to a SharePoint document library.

    AuthError from the handshake is not converted; no write is
    attempted when authentication fails.
    """

    name = "sharepoint"

    def __init__(self, config: SharePointConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            return build_sharepoint_client(self.config)
        return self._client

    def store(self, filename: str, payload: bytes) -> None:
        client = self._get_client()
        try:
            session = authenticate(self.config, client=client)

            logger.info(f"Uploading {filename}")
            upload_file(client, self.config, session, filename, payload)
        finally:
            if client is not self._client:
                client.close()

        logger.info(f"Uploaded {filename} to {self.config.list_name}")

    def check(self) -> None:
        client = self._get_client()
        try:
            authenticate(self.config, client=client)
        finally:
            if client is not self._client:
                client.close()

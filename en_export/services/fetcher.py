"""
Download of the data export from the remote export service.

One GET per run: token, date range and export type go in the query
string; the body is returned as text. The service reports business
errors with a 200 status and an error message in the body, so a
successful response is still checked for known error markers.
"""

import logging
from typing import Optional

import httpx

from en_export.config.models import DownloadConfig
from en_export.dates import DateRange

logger = logging.getLogger(__name__)

# Substrings the export service puts in a 200 body when the export failed
ERROR_MARKERS = ("ERROR:", "Data can only be exported")


class DownloadError(Exception):
    """
    Raised when the export cannot be downloaded or contains an error.

    Attributes:
        payload: Body of the response when one was received, kept so
            the service's error message can be inspected
        status_code: HTTP status of the response, if any
    """

    def __init__(
        self,
        message: str,
        payload: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code


def is_error_payload(text: str) -> bool:
    """Check whether a body contains one of the service's error markers."""
    return any(marker in text for marker in ERROR_MARKERS)


def build_download_client(config: DownloadConfig) -> httpx.Client:
    """
    Create the HTTP client used for the export download.

    Args:
        config: DownloadConfig with timeouts and TLS settings

    Returns:
        httpx.Client following up to `max_redirects` redirects
    """
    return httpx.Client(
        timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
        verify=config.verify_tls,
        follow_redirects=True,
        max_redirects=config.max_redirects,
        headers={"User-Agent": config.user_agent},
    )


def fetch_export(
    config: DownloadConfig,
    date_range: DateRange,
    client: Optional[httpx.Client] = None,
) -> str:
    """
    Download the export for a date range.

    Args:
        config: DownloadConfig with endpoint, token and export type
        date_range: Days to export
        client: Optional pre-built client (a new one is created and
            closed otherwise)

    Returns:
        Response body as text

    Raises:
        DownloadError: On transport failure, non-200 status, empty body,
            or a body containing an error marker (payload attached)
    """
    logger.info(f"Downloading from {config.url} for date(s) {date_range.label()}")

    params = {"token": config.token, **date_range.download_params(), "type": config.export_format}

    owns_client = client is None
    if owns_client:
        client = build_download_client(config)

    try:
        request = client.build_request("GET", config.url, params=params)
        request.headers["Referer"] = str(request.url.copy_remove_param("token"))
        response = client.send(request)
    except httpx.HTTPError as e:
        raise DownloadError(f"Download error: {type(e).__name__}: {e}") from e
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        raise DownloadError(
            f"Download error: export service returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    body = response.text
    if not body:
        raise DownloadError("Download error: export service returned an empty body", status_code=200)

    if is_error_payload(body):
        raise DownloadError(
            "Download error: The data contains an error message from the export service",
            payload=body,
            status_code=200,
        )

    logger.debug(f"Downloaded {len(body)} characters")
    return body

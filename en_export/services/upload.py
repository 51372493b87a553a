"""
Upload backends for the downloaded export.

Every backend stores a payload under a filename on one remote store.
The backend is chosen by ExportConfig.target.
"""

import logging
from abc import ABC, abstractmethod

from en_export.config.models import ExportConfig

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Raised when the payload cannot be written to the upload target."""
    pass


class Uploader(ABC):
    """Persist payload bytes under a filename on a remote store."""

    name = "uploader"

    @abstractmethod
    def store(self, filename: str, payload: bytes) -> None:
        """
        Write the payload.

        Raises:
            UploadError: If login or the write fails
        """

    def check(self) -> None:
        """Verify the target is reachable without writing anything."""


def create_uploader(config: ExportConfig) -> Uploader:
    """
    Build the uploader for the configured target.

    Args:
        config: ExportConfig with `target` and the matching section

    Returns:
        SFTPUploader or SharePointUploader
    """
    if config.target == "sharepoint":
        from en_export.sharepoint.client import SharePointUploader
        return SharePointUploader(config.sharepoint)

    from en_export.sftp.client import SFTPUploader
    return SFTPUploader(config.sftp)

"""
SFTP module for uploading the export to remote servers.

This module provides:
- SFTPClient: Context-managed client for SFTP operations
- SFTPUploader: Uploader backend built on SFTPClient
- test_connection: Quick connection test utility
"""

from en_export.sftp.client import (
    SFTPClient,
    SFTPError,
    SFTPLoginError,
    SFTPUploader,
    test_connection,
)

__all__ = [
    "SFTPClient",
    "SFTPError",
    "SFTPLoginError",
    "SFTPUploader",
    "test_connection",
]

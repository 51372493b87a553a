"""
SharePoint module for uploading the export to a document library.

This module provides:
- authenticate: claims-based handshake returning an AuthSession
- SharePointUploader: Uploader backend built on the handshake
"""

from en_export.sharepoint.auth import (
    AuthError,
    AuthSession,
    SecurityTokenRequest,
    authenticate,
    parse_set_cookie_headers,
)
from en_export.sharepoint.client import SharePointUploader, build_upload_url

__all__ = [
    "AuthError",
    "AuthSession",
    "SecurityTokenRequest",
    "SharePointUploader",
    "authenticate",
    "build_upload_url",
    "parse_set_cookie_headers",
]

"""
SFTP client for uploading the export to a remote server.

This module provides a context-managed SFTP client that:
- Connects with password or SSH key authentication
- Writes an in-memory payload to a remote file
- Closes the session when done
"""

import io
import logging
import os
import posixpath
from typing import Optional

import paramiko

from en_export.config.models import SFTPConfig
from en_export.services.upload import Uploader, UploadError

logger = logging.getLogger(__name__)


class SFTPError(Exception):
    """Raised when SFTP operations fail."""
    pass


class SFTPLoginError(SFTPError):
    """Raised when the server rejects the connection or credentials."""
    pass


class SFTPClient:
    """
    SFTP client for writing files to a remote server.

    Supports both password and SSH key authentication.
    Use as a context manager to ensure the session is closed.

    Example:
        ```python
        config = SFTPConfig(
            host="sftp.example.com",
            username="user",
            password="secret",
            remote_path="/incoming/"
        )

        with SFTPClient(config) as sftp:
            sftp.put_bytes("20240115.csv", payload)
        ```
    """

    def __init__(self, config: SFTPConfig):
        """
        Initialize SFTP client with configuration.

        Args:
            config: SFTPConfig with connection details
        """
        self.config = config
        self._transport: Optional[paramiko.Transport] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def __enter__(self) -> "SFTPClient":
        """Connect to SFTP server."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect."""
        self.disconnect()

    def connect(self) -> None:
        """
        Establish connection to SFTP server.

        Raises:
            SFTPLoginError: If connection or authentication fails
        """
        try:
            logger.info(f"Connecting to SFTP: {self.config.host}:{self.config.port}")

            self._transport = paramiko.Transport((self.config.host, self.config.port))

            if self.config.key_path:
                key_path = os.path.expanduser(self.config.key_path)
                if not os.path.exists(key_path):
                    raise SFTPLoginError(f"SSH key file not found: {key_path}")

                pkey = self._load_private_key(key_path)
                self._transport.connect(username=self.config.username, pkey=pkey)
                logger.debug(f"Authenticated with SSH key: {key_path}")

            elif self.config.password:
                self._transport.connect(
                    username=self.config.username,
                    password=self.config.password
                )
                logger.debug("Authenticated with password")

            else:
                raise SFTPLoginError(
                    "No authentication method provided. "
                    "Set either 'password' or 'key_path' in SFTP config."
                )

            self._sftp = paramiko.SFTPClient.from_transport(self._transport)
            logger.info(f"Connected to SFTP server: {self.config.host}")

        except SFTPError:
            self.disconnect()
            raise
        except paramiko.SSHException as e:
            self.disconnect()
            raise SFTPLoginError(f"SSH connection failed: {e}") from e
        except Exception as e:
            self.disconnect()
            raise SFTPLoginError(f"SFTP connection failed: {e}") from e

    def _load_private_key(self, key_path: str) -> paramiko.PKey:
        """
        Load private key from file, trying different key types.

        Raises:
            SFTPLoginError: If key cannot be loaded
        """
        key_classes = [
            paramiko.RSAKey,
            paramiko.Ed25519Key,
            paramiko.ECDSAKey,
        ]

        last_error = None
        for key_class in key_classes:
            try:
                return key_class.from_private_key_file(key_path)
            except paramiko.SSHException as e:
                last_error = e
                continue

        raise SFTPLoginError(f"Could not load SSH key {key_path}: {last_error}")

    def disconnect(self) -> None:
        """Close SFTP connection."""
        if self._sftp:
            try:
                self._sftp.close()
            except Exception as e:
                logger.warning(f"Error closing SFTP client: {e}")
            self._sftp = None

        if self._transport:
            try:
                self._transport.close()
            except Exception as e:
                logger.warning(f"Error closing transport: {e}")
            self._transport = None

        logger.debug("SFTP connection closed")

    def _ensure_connected(self) -> None:
        """Raise error if not connected."""
        if not self._sftp:
            raise SFTPError("Not connected to SFTP server. Call connect() first.")

    def remote_file_path(self, filename: str) -> str:
        """Remote path of a file inside the configured directory."""
        if not self.config.remote_path:
            return filename
        return posixpath.join(self.config.remote_path, filename)

    def put_bytes(self, filename: str, payload: bytes) -> None:
        """
        Write a payload to a remote file, replacing any existing file.

        Args:
            filename: Name of the remote file
            payload: File content

        Raises:
            SFTPError: If the write fails or the remote size does not match
        """
        self._ensure_connected()

        remote_path = self.remote_file_path(filename)
        logger.debug(f"Writing {len(payload)} bytes to {remote_path}")

        try:
            self._sftp.putfo(io.BytesIO(payload), remote_path, file_size=len(payload), confirm=True)
        except IOError as e:
            raise SFTPError(f"Failed to write {remote_path}: {e}") from e


class SFTPUploader(Uploader):
    """Uploader writing the export to an SFTP server."""

    name = "sftp"

    def __init__(self, config: SFTPConfig):
        self.config = config

    def store(self, filename: str, payload: bytes) -> None:
        logger.info(f"Uploading {filename}")

        client = SFTPClient(self.config)
        try:
            client.connect()
        except SFTPError as e:
            raise UploadError(f"Upload error: could not log in to SFTP site. {e}") from e

        try:
            client.put_bytes(filename, payload)
        except SFTPError as e:
            raise UploadError(f"Upload error: could not upload file to SFTP site. {e}") from e
        finally:
            client.disconnect()

        logger.info(f"Uploaded {filename} to {self.config.host}")

    def check(self) -> None:
        if not test_connection(self.config):
            raise UploadError(f"Upload error: could not log in to SFTP site {self.config.host}")


def test_connection(config: SFTPConfig) -> bool:
    """
    Test SFTP connection without writing files.

    Args:
        config: SFTPConfig with connection details

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with SFTPClient(config):
            logger.info("Connection test successful.")
            return True
    except SFTPError as e:
        logger.error(f"Connection test failed: {e}")
        return False

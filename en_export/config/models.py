"""
Pydantic models for export job configuration.

These models describe where the export is downloaded from, which
backend receives the file, and who is told when something breaks.
A configuration is built from environment variables or from a YAML
file (see loader.py); both end up as an ExportConfig.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 6.1; rv:33.0) Gecko/20100101 Firefox/33.0"
)
UPLOAD_SECTIONS = ("sftp", "sharepoint")
DEFAULT_TOKEN_ENDPOINT = "https://login.microsoftonline.com/extSTS.srf"
DEFAULT_UPLOAD_PATH_TEMPLATE = (
    "/_api/web/lists/getbytitle('{list_name}')/rootfolder/files/"
    "add(url='{filename}',overwrite=true)"
)


class DownloadConfig(BaseModel):
    """
    Remote data-export endpoint settings.

    Attributes:
        url: Base URL of the export service
        token: API token sent as the `token` query parameter
        format: Export type sent as the `type` query parameter
        user_agent: User-Agent header sent with the request
        connect_timeout: Seconds to wait for the TCP/TLS connection
        timeout: Overall seconds to wait for the export to complete
        max_redirects: Maximum number of redirects to follow
        verify_tls: Verify the server certificate (off by default)
    """
    model_config = ConfigDict(populate_by_name=True)

    url: str
    token: str
    export_format: str = Field(default="csv", alias="format")
    user_agent: str = DEFAULT_USER_AGENT
    connect_timeout: float = 9.0
    timeout: float = 180.0
    max_redirects: int = 10
    verify_tls: bool = False


class SFTPConfig(BaseModel):
    """
    SFTP upload target.

    Attributes:
        host: SFTP server hostname
        port: SFTP server port (default: 22)
        username: SFTP username
        password: SFTP password (use password OR key_path, not both)
        key_path: Path to SSH private key file
        remote_path: Remote directory to write into ("" = login directory)
    """
    host: str
    port: int = 22
    username: str
    password: Optional[str] = None
    key_path: Optional[str] = None
    remote_path: str = ""


class SharePointConfig(BaseModel):
    """
    SharePoint document library target using claims-based authentication.

    Attributes:
        username: Account used for the WS-Trust security token request
        password: Password for that account
        tenant_url: Tenant root, e.g. https://contoso.sharepoint.com
        site_url: Site holding the library, e.g. https://contoso.sharepoint.com/sites/data
        list_name: Title of the document library
        token_endpoint: Identity provider endpoint issuing security tokens
        upload_path_template: Path appended to site_url for the file write;
            `{list_name}` and `{filename}` are substituted
        timeout: Seconds to wait on each SharePoint call
    """
    username: str
    password: str
    tenant_url: str
    site_url: str
    list_name: str
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT
    upload_path_template: str = DEFAULT_UPLOAD_PATH_TEMPLATE
    timeout: float = 60.0

    @property
    def realm(self) -> str:
        """Address the security token is issued for."""
        return self.tenant_url.rstrip("/")


class NotificationConfig(BaseModel):
    """
    Operator notification settings.

    Attributes:
        error_email: Address that receives failure emails (None disables email)
        from_email: Sender address for failure emails
        smtp_host: SMTP relay hostname
        smtp_port: SMTP relay port
        smtp_username: Optional SMTP login
        smtp_password: Optional SMTP password
        smtp_starttls: Upgrade the SMTP connection with STARTTLS
        download_subject: Subject for download failures
        download_message: Body for download failures
        upload_subject: Subject for authentication and upload failures
        upload_message: Body for authentication and upload failures
        log_file: File that failures are appended to (None disables it)
        webhook_url: Optional URL receiving the job result as JSON
    """
    error_email: Optional[str] = None
    from_email: str = "data-export@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    download_subject: str = "Data export download failed"
    download_message: str = "The data export could not be downloaded."
    upload_subject: str = "Data export upload failed"
    upload_message: str = "The data export could not be uploaded."
    log_file: Optional[str] = None
    webhook_url: Optional[str] = None


class ExportConfig(BaseModel):
    """
    Complete export job configuration.

    Exactly one upload backend is used per run, selected by `target`.
    The section for the selected backend must be present.

    Example YAML:
        ```yaml
        target: sftp
        file_extension: .csv
        download:
          url: https://export.example.org/ea-dataservice/export.service
          token: ${ENGAGING_NETWORKS_TOKEN}
          format: csv
        sftp:
          host: sftp.example.org
          username: exports
          password: ${UPLOAD_SFTP_PASSWORD}
        notification:
          error_email: ops@example.org
          log_file: /var/log/en-export.log
        ```
    """
    download: DownloadConfig
    target: Literal["sftp", "sharepoint"] = "sftp"
    sftp: Optional[SFTPConfig] = None
    sharepoint: Optional[SharePointConfig] = None
    file_extension: str = ""
    notification: NotificationConfig = Field(default_factory=NotificationConfig)

    @model_validator(mode="before")
    @classmethod
    def drop_unused_sections(cls, data):
        """Discard the settings of the backend that is not selected."""
        if isinstance(data, dict):
            target = data.get("target", "sftp")
            data = {
                key: value for key, value in data.items()
                if key not in UPLOAD_SECTIONS or key == target
            }
        return data

    @model_validator(mode="after")
    def check_target_section(self) -> "ExportConfig":
        """Require the configuration block of the selected backend."""
        if getattr(self, self.target) is None:
            raise ValueError(
                f"target is '{self.target}' but no '{self.target}' section is configured"
            )
        return self

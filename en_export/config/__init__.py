"""
Configuration module for the export job.

This module provides Pydantic models plus loaders that build them
from environment variables or a YAML file.
"""

from en_export.config.models import (
    DownloadConfig,
    ExportConfig,
    NotificationConfig,
    SFTPConfig,
    SharePointConfig,
)
from en_export.config.loader import (
    ConfigError,
    load_config,
    load_config_file,
    load_config_from_dict,
    load_config_from_env,
)

__all__ = [
    # Models
    "DownloadConfig",
    "ExportConfig",
    "NotificationConfig",
    "SFTPConfig",
    "SharePointConfig",
    # Loader
    "ConfigError",
    "load_config",
    "load_config_file",
    "load_config_from_dict",
    "load_config_from_env",
]

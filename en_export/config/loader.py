"""
Configuration loader for the export job.

Configuration comes from one of two places:
- Environment variables (optionally from a .env file)
- A YAML file, whose text may reference ${ENV_VAR} placeholders
"""

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from en_export.config.models import UPLOAD_SECTIONS, ExportConfig

logger = logging.getLogger(__name__)

# Environment variable -> (section, field)
ENV_VARS: Dict[str, tuple] = {
    "DATA_SERVICE_URL": ("download", "url"),
    "ENGAGING_NETWORKS_TOKEN": ("download", "token"),
    "DOWNLOAD_FORMAT": ("download", "format"),
    "DOWNLOAD_TIMEOUT": ("download", "timeout"),
    "DOWNLOAD_CONNECT_TIMEOUT": ("download", "connect_timeout"),
    "UPLOAD_SFTP_SERVER": ("sftp", "host"),
    "UPLOAD_SFTP_PORT": ("sftp", "port"),
    "UPLOAD_SFTP_USERNAME": ("sftp", "username"),
    "UPLOAD_SFTP_PASSWORD": ("sftp", "password"),
    "UPLOAD_SFTP_KEY_PATH": ("sftp", "key_path"),
    "UPLOAD_SFTP_PATH": ("sftp", "remote_path"),
    "SHAREPOINT_USERNAME": ("sharepoint", "username"),
    "SHAREPOINT_PASSWORD": ("sharepoint", "password"),
    "SHAREPOINT_TENANT_URL": ("sharepoint", "tenant_url"),
    "SHAREPOINT_SITE_URL": ("sharepoint", "site_url"),
    "SHAREPOINT_LIST_NAME": ("sharepoint", "list_name"),
    "SHAREPOINT_TOKEN_ENDPOINT": ("sharepoint", "token_endpoint"),
    "ERROR_EMAIL": ("notification", "error_email"),
    "ERROR_FROM_EMAIL": ("notification", "from_email"),
    "ERROR_DOWNLOAD_SUBJECT": ("notification", "download_subject"),
    "ERROR_DOWNLOAD_MSG": ("notification", "download_message"),
    "ERROR_UPLOAD_SUBJECT": ("notification", "upload_subject"),
    "ERROR_UPLOAD_MSG": ("notification", "upload_message"),
    "SMTP_HOST": ("notification", "smtp_host"),
    "SMTP_PORT": ("notification", "smtp_port"),
    "SMTP_USERNAME": ("notification", "smtp_username"),
    "SMTP_PASSWORD": ("notification", "smtp_password"),
    "SMTP_STARTTLS": ("notification", "smtp_starttls"),
    "LOG_FILE_LOCATION": ("notification", "log_file"),
    "WEBHOOK_URL": ("notification", "webhook_url"),
}


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


def _format_validation_error(prefix: str, error: ValidationError) -> str:
    error_messages = []
    for item in error.errors():
        location = " -> ".join(str(loc) for loc in item["loc"])
        error_messages.append(f"  {location}: {item['msg']}")
    return prefix + "\n" + "\n".join(error_messages)


def load_config_from_dict(config_dict: dict) -> ExportConfig:
    """
    Create an ExportConfig from a dictionary.

    Args:
        config_dict: Dictionary with configuration values

    Returns:
        Validated ExportConfig object

    Raises:
        ConfigError: If validation fails
    """
    try:
        return ExportConfig(**config_dict)
    except ValidationError as e:
        raise ConfigError(
            _format_validation_error("Invalid configuration:", e)
        ) from e


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ExportConfig:
    """
    Build the configuration from environment variables.

    Variables that are unset or empty are left out so model defaults
    apply. Only the upload section named by UPLOAD_TARGET is built;
    variables belonging to the other backend are ignored.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Returns:
        Validated ExportConfig object

    Raises:
        ConfigError: If required values are missing or invalid
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    target = (environ.get("UPLOAD_TARGET") or "sftp").strip().lower()

    config_dict: dict = {"download": {}, "target": target}
    for env_name, (section, key) in ENV_VARS.items():
        if section in UPLOAD_SECTIONS and section != target:
            continue
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        config_dict.setdefault(section, {})[key] = value

    if environ.get("UPLOAD_FILE_EXTENSION") is not None:
        config_dict["file_extension"] = environ["UPLOAD_FILE_EXTENSION"]

    return load_config_from_dict(config_dict)


def load_yaml_file(file_path: Path) -> dict:
    """
    Load and parse a YAML file, expanding ${ENV_VAR} references first.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed YAML content as dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            text = os.path.expandvars(f.read())
        content = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {file_path}: {e}") from e
    except IOError as e:
        raise ConfigError(f"Failed to read configuration file {file_path}: {e}") from e

    if content is None:
        raise ConfigError(f"Empty configuration file: {file_path}")

    if not isinstance(content, dict):
        raise ConfigError(
            f"Invalid configuration format in {file_path}. "
            "Expected a YAML mapping (dictionary)."
        )

    return content


def load_config_file(path: str) -> ExportConfig:
    """
    Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated ExportConfig object

    Raises:
        ConfigError: If file not found, invalid YAML, or validation fails
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    load_dotenv()
    logger.info(f"Loading configuration from: {config_path}")
    raw_config = load_yaml_file(config_path)

    try:
        return ExportConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(
            _format_validation_error(f"Invalid configuration in {config_path}:", e)
        ) from e


def load_config(path: Optional[str] = None) -> ExportConfig:
    """Load from a YAML file when a path is given, otherwise from the environment."""
    if path:
        return load_config_file(path)
    return load_config_from_env()

"""Configuration loader for msoauth.

Profiles live in a single YAML file validated against the Pydantic schema in
config_schema.py. Token records are kept beside it, one JSON file per profile.

Usage:
    from msoauth.config import get_token_dir, load_profile

    profile_config = load_profile("work")
    token_dir = get_token_dir()
"""

import os
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from msoauth.config_schema import ConfigFile, ProfileConfig
from msoauth.core.errors import (
    ConfigLoadError,
    ConfigMissingError,
    ConfigValidationError,
    ProfileNotFoundError,
)
from msoauth.core.logging import get_logger, redact

logger = get_logger(__name__)

APP_NAME = "msoauth"
CONFIG_FILE_NAME = "config.yaml"
DEFAULT_PROFILE = "default"

SAMPLE_CONFIG = """\
default:
  client_id: "..."
  client_secret: "..."
  tenant_id: "..."
  scope: "https://graph.microsoft.com/.default"
"""


def get_config_dir() -> Path:
    """Get the msoauth config directory from environment or the platform default."""
    env_dir = os.environ.get("MSOAUTH_CONFIG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path(click.get_app_dir(APP_NAME))


def get_config_path() -> Path:
    """Get the config file path; MSOAUTH_CONFIG_PATH overrides the directory default."""
    env_path = os.environ.get("MSOAUTH_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / CONFIG_FILE_NAME


def get_token_dir() -> Path:
    """Directory holding one <profile>.json token record per profile."""
    return get_config_dir()


def _format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors into actionable messages.

    Args:
        error: Pydantic ValidationError

    Returns:
        Formatted error message with specific field errors
    """
    messages = []
    for err in error.errors():
        # e.g. "work.client_id"
        field_path = ".".join(str(loc) for loc in err["loc"])
        msg = err["msg"]
        err_type = err["type"]

        if err_type == "missing":
            messages.append(f"  - Missing required field '{field_path}'")
        elif err_type == "string_type":
            messages.append(f"  - Field '{field_path}' must be a string")
        elif err_type == "extra_forbidden":
            messages.append(f"  - Unknown field '{field_path}'")
        else:
            messages.append(f"  - Field '{field_path}': {msg}")

    return "\n".join(messages)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse the YAML config file.

    Raises:
        ConfigMissingError: If the file does not exist
        ConfigLoadError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigMissingError(
            f"Config file not found at {path}\n\n"
            f"Please create it with the following format:\n\n{SAMPLE_CONFIG}"
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e
    except OSError as e:
        raise ConfigLoadError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Configuration file {path} must be a YAML mapping of profiles, "
            f"got {type(data).__name__}"
        )
    return data


def load_config(path: Path | None = None) -> ConfigFile:
    """Load and validate the whole config file.

    Args:
        path: Optional path to the config file. Defaults to get_config_path().

    Returns:
        Validated ConfigFile

    Raises:
        ConfigMissingError: If the file does not exist
        ConfigLoadError: If the file cannot be parsed
        ConfigValidationError: If validation fails
    """
    config_path = path or get_config_path()
    logger.debug("Loading configuration", path=str(config_path))

    data = _load_yaml(config_path)
    try:
        config = ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Configuration validation failed for {config_path}:\n"
            f"{_format_validation_errors(e)}"
        ) from e

    logger.debug(
        "Configuration loaded",
        path=str(config_path),
        profiles=config.profile_names(),
    )
    return config


def load_profile(profile: str = DEFAULT_PROFILE, path: Path | None = None) -> ProfileConfig:
    """Resolve a single profile from the config file.

    Raises:
        ProfileNotFoundError: If the profile has no entry
        (plus everything load_config() raises)
    """
    config_path = path or get_config_path()
    config = load_config(config_path)

    profile_config = config.root.get(profile)
    if profile_config is None:
        available = config.profile_names()
        hint = ", ".join(available) if available else "none"
        raise ProfileNotFoundError(
            f"Auth profile `{profile}` not found in {config_path} (available: {hint})",
            profile=profile,
            available=available,
        )

    logger.debug(
        "Profile resolved",
        profile=profile,
        client_id=redact(profile_config.client_id),
        tenant_id=redact(profile_config.tenant_id),
    )
    return profile_config


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Validate a config file and summarize its profiles.

    Returns:
        Tuple of (is_valid, message)
    """
    try:
        config = load_config(path)
    except ConfigLoadError as e:
        return (False, f"Load error: {e}")
    except ConfigValidationError as e:
        return (False, f"Validation error: {e}")

    names = config.profile_names()
    if not names:
        return (True, "Configuration valid but defines no profiles")
    lines = [f"Configuration valid ({len(names)} profiles)"]
    lines.extend(f"  - {name}" for name in names)
    return (True, "\n".join(lines))

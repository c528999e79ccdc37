"""Pydantic configuration schema for msoauth.

config.yaml is a mapping of profile name to provider settings:

    default:
      client_id: "00000000-0000-0000-0000-000000000000"
      client_secret: "..."          # optional
      tenant_id: "contoso.onmicrosoft.com"
      scope: "https://graph.microsoft.com/.default offline_access"

Usage:
    from msoauth.config_schema import ConfigFile

    config = ConfigFile.model_validate(yaml_data)
    profile = config.root["default"]
"""

import re

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

DEFAULT_AUTHORITY = "https://login.microsoftonline.com"

# Profile names double as token file names
PROFILE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def is_valid_profile_name(name: str) -> bool:
    """Return True if a profile name is safe to use as a file stem."""
    return bool(PROFILE_NAME_PATTERN.match(name)) and ".." not in name


class ProfileConfig(BaseModel):
    """Provider settings for one profile."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    client_id: str = Field(description="Azure AD Application (client) ID")
    client_secret: str | None = Field(
        default=None,
        description="Client secret (confidential clients only)",
    )
    tenant_id: str = Field(description="Directory (tenant) ID, domain, or 'common'")
    scope: str = Field(description="Space-separated scopes to request")
    authority: str = Field(
        default=DEFAULT_AUTHORITY,
        description="Identity provider base URL",
    )

    @field_validator("client_id", "tenant_id", "scope")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only values."""
        if not v or not v.strip():
            raise ValueError("value cannot be empty")
        return v.strip()

    @field_validator("client_secret")
    @classmethod
    def validate_secret(cls, v: str | None) -> str | None:
        """Treat an empty secret as no secret."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("authority")
    @classmethod
    def validate_authority(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("authority must be an https:// URL")
        return v.rstrip("/")


class ConfigFile(RootModel[dict[str, ProfileConfig]]):
    """The whole config.yaml: profile name -> ProfileConfig."""

    @field_validator("root")
    @classmethod
    def validate_profile_names(cls, v: dict[str, ProfileConfig]) -> dict[str, ProfileConfig]:
        for name in v:
            if not is_valid_profile_name(name):
                raise ValueError(
                    f"invalid profile name '{name}': use letters, digits, '_', '-' or '.'"
                )
        return v

    def profile_names(self) -> list[str]:
        return sorted(self.root)

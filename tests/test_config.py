"""Tests for config loading, profile resolution and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from msoauth.config import (
    get_config_dir,
    get_config_path,
    get_token_dir,
    load_config,
    load_profile,
    validate_config_file,
)
from msoauth.config_schema import DEFAULT_AUTHORITY, ProfileConfig, is_valid_profile_name
from msoauth.core.errors import (
    ConfigLoadError,
    ConfigMissingError,
    ConfigValidationError,
    ProfileNotFoundError,
)

SAMPLE = {
    "default": {
        "client_id": "default-client",
        "tenant_id": "common",
        "scope": "https://graph.microsoft.com/.default",
    },
    "work": {
        "client_id": "work-client",
        "client_secret": "work-secret",
        "tenant_id": "contoso.onmicrosoft.com",
        "scope": "https://graph.microsoft.com/.default offline_access",
    },
}


@pytest.fixture
def config_file(isolated_config_dir: Path) -> Path:
    """Write a two-profile config.yaml in the isolated config directory."""
    isolated_config_dir.mkdir(parents=True, exist_ok=True)
    path = isolated_config_dir / "config.yaml"
    path.write_text(yaml.dump(SAMPLE, default_flow_style=False))
    return path


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def test_config_dir_from_environment(isolated_config_dir: Path):
    assert get_config_dir() == isolated_config_dir
    assert get_config_path() == isolated_config_dir / "config.yaml"
    assert get_token_dir() == isolated_config_dir


def test_config_path_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MSOAUTH_CONFIG_PATH", str(tmp_path / "elsewhere.yaml"))
    assert get_config_path() == tmp_path / "elsewhere.yaml"


def test_default_config_dir_is_app_dir(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("MSOAUTH_CONFIG_DIR")
    assert get_config_dir().name.lower() == "msoauth"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_load_profile(config_file: Path):
    config = load_profile("work")

    assert config.client_id == "work-client"
    assert config.client_secret == "work-secret"
    assert config.tenant_id == "contoso.onmicrosoft.com"
    assert config.authority == DEFAULT_AUTHORITY


def test_load_profile_without_secret(config_file: Path):
    assert load_profile("default").client_secret is None


def test_profile_config_is_immutable(config_file: Path):
    config = load_profile("default")
    with pytest.raises(ValidationError):
        config.client_id = "changed"  # type: ignore[misc]


def test_missing_config_file_explains_format(isolated_config_dir: Path):
    with pytest.raises(ConfigMissingError) as exc_info:
        load_profile("default")

    message = str(exc_info.value)
    assert str(isolated_config_dir / "config.yaml") in message
    assert "client_id" in message
    assert "tenant_id" in message
    assert isinstance(exc_info.value, ConfigLoadError)


def test_unknown_profile_lists_available(config_file: Path):
    with pytest.raises(ProfileNotFoundError) as exc_info:
        load_profile("personal")

    assert exc_info.value.profile == "personal"
    assert exc_info.value.available == ["default", "work"]
    assert "`personal`" in str(exc_info.value)


def test_invalid_yaml(config_file: Path):
    config_file.write_text("default: [unclosed")
    with pytest.raises(ConfigLoadError, match="Failed to parse YAML"):
        load_config(config_file)


def test_non_mapping_yaml(config_file: Path):
    config_file.write_text("- just\n- a list\n")
    with pytest.raises(ConfigLoadError, match="must be a YAML mapping"):
        load_config(config_file)


def test_empty_file_has_no_profiles(config_file: Path):
    config_file.write_text("")
    with pytest.raises(ProfileNotFoundError):
        load_profile("default", config_file)


def test_missing_field_is_reported(config_file: Path):
    config_file.write_text(yaml.dump({"work": {"client_id": "x", "scope": "s"}}))

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_file)
    assert "Missing required field 'work.tenant_id'" in str(exc_info.value)


def test_unknown_field_is_reported(config_file: Path):
    data = {"work": {**SAMPLE["work"], "redirect_uri": "http://localhost"}}
    config_file.write_text(yaml.dump(data))

    with pytest.raises(ConfigValidationError, match="Unknown field 'work.redirect_uri'"):
        load_config(config_file)


def test_invalid_profile_name_rejected(config_file: Path):
    config_file.write_text(yaml.dump({"../escape": SAMPLE["work"]}))

    with pytest.raises(ConfigValidationError, match="invalid profile name"):
        load_config(config_file)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def test_blank_secret_treated_as_absent():
    config = ProfileConfig(client_id="c", client_secret="  ", tenant_id="t", scope="s")
    assert config.client_secret is None


def test_blank_client_id_rejected():
    with pytest.raises(ValueError):
        ProfileConfig(client_id=" ", tenant_id="t", scope="s")


def test_authority_must_be_https():
    with pytest.raises(ValueError):
        ProfileConfig(client_id="c", tenant_id="t", scope="s", authority="http://insecure")


@pytest.mark.parametrize(
    ("name", "valid"),
    [
        ("default", True),
        ("work-2", True),
        ("team_a.prod", True),
        ("", False),
        (".hidden", False),
        ("a/b", False),
        ("a..b", False),
    ],
)
def test_profile_name_rules(name: str, valid: bool):
    assert is_valid_profile_name(name) is valid


# ---------------------------------------------------------------------------
# validate_config_file
# ---------------------------------------------------------------------------


def test_validate_config_file_success(config_file: Path):
    is_valid, message = validate_config_file(config_file)

    assert is_valid is True
    assert "2 profiles" in message
    assert "work" in message


def test_validate_config_file_missing(isolated_config_dir: Path):
    is_valid, message = validate_config_file(isolated_config_dir / "config.yaml")

    assert is_valid is False
    assert message.startswith("Load error:")


def test_validate_config_file_invalid(config_file: Path):
    config_file.write_text(yaml.dump({"work": {"client_id": "x"}}))

    is_valid, message = validate_config_file(config_file)
    assert is_valid is False
    assert message.startswith("Validation error:")

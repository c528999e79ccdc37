"""Pytest fixtures for msoauth tests.

Provides profile configs, a temporary token store, a controllable clock,
and fake HTTP responses for the exchange client.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from msoauth.auth.exchange import TokenExchangeClient
from msoauth.auth.token_store import TokenStore
from msoauth.config_schema import ProfileConfig

NOW = 1_700_000_000.0


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self, clock: FakeClock | None = None):
        self.calls: list[float] = []
        self.clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.now += seconds


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point msoauth at a throwaway config directory for every test."""
    config_dir = tmp_path / "msoauth"
    monkeypatch.setenv("MSOAUTH_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("MSOAUTH_CONFIG_PATH", raising=False)
    monkeypatch.delenv("MSOAUTH_PROFILE", raising=False)
    return config_dir


@pytest.fixture
def profile_config() -> ProfileConfig:
    """Return a public-client profile config."""
    return ProfileConfig(
        client_id="test-client-id",
        tenant_id="test-tenant-id",
        scope="https://graph.microsoft.com/.default offline_access",
    )


@pytest.fixture
def confidential_config() -> ProfileConfig:
    """Return a profile config with a client secret."""
    return ProfileConfig(
        client_id="test-client-id",
        client_secret="test-secret",
        tenant_id="test-tenant-id",
        scope="https://graph.microsoft.com/.default offline_access",
    )


@pytest.fixture
def store(isolated_config_dir: Path) -> TokenStore:
    """Return a TokenStore rooted in the temporary config directory."""
    return TokenStore(isolated_config_dir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def http_session() -> MagicMock:
    """Return a mock requests.Session; set .post.side_effect per test."""
    return MagicMock()


@pytest.fixture
def exchange_client(
    http_session: MagicMock, clock: FakeClock, sleep: RecordingSleep
) -> TokenExchangeClient:
    """Return a TokenExchangeClient wired to the mock session and fake clock."""
    return TokenExchangeClient(session=http_session, clock=clock, sleep=sleep)


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mock requests.Response objects."""

    def _make(status_code: int = 200, body: Any = None, text: str | None = None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        if text is None:
            text = json.dumps(body) if body is not None else ""
        response.text = text
        if body is not None:
            response.json.return_value = body
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        return response

    return _make


@pytest.fixture
def token_body() -> dict[str, Any]:
    """Return a successful token endpoint body."""
    return {
        "token_type": "Bearer",
        "scope": "https://graph.microsoft.com/.default",
        "expires_in": 3599,
        "ext_expires_in": 3599,
        "access_token": "new-access-token",
        "refresh_token": "new-refresh-token",
    }


@pytest.fixture
def device_code_body() -> dict[str, Any]:
    """Return a device authorization endpoint body."""
    return {
        "user_code": "ABCD-EFGH",
        "device_code": "device-code-123",
        "verification_uri": "https://microsoft.com/devicelogin",
        "expires_in": 900,
        "interval": 5,
        "message": "To sign in, use a web browser to open the page "
        "https://microsoft.com/devicelogin and enter the code ABCD-EFGH to authenticate.",
    }


@pytest.fixture
def pending_body() -> dict[str, Any]:
    return {
        "error": "authorization_pending",
        "error_description": "AADSTS70016: OAuth 2.0 device flow error. "
        "Authorization is pending. Continue polling.",
        "error_codes": [70016],
    }

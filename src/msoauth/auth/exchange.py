"""OAuth2 token exchanges against the Microsoft identity platform.

Implements the two grants msoauth needs:
- Device authorization (RFC 8628): request a device code, then poll the
  token endpoint until the human approves in a browser
- Refresh token: trade a refresh token for a fresh access token

All requests are form-encoded POSTs with JSON responses. Error bodies are
surfaced verbatim so provider diagnostics (AADSTS codes) reach the operator.

Usage:
    from msoauth.auth.exchange import TokenExchangeClient

    client = TokenExchangeClient()
    session = client.start_device_flow(profile_config)
    print(session.message)
    credential = client.poll_for_token(profile_config, session)
"""

import json
import time
from collections.abc import Callable
from typing import Any

import requests
from pydantic import ValidationError

from msoauth.auth.expiry import stamp_expiry
from msoauth.auth.models import Credential, DeviceAuthorizationSession
from msoauth.config_schema import ProfileConfig
from msoauth.core.errors import ProviderError
from msoauth.core.logging import get_logger, redact

logger = get_logger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
REFRESH_TOKEN_GRANT = "refresh_token"

# Token endpoint error codes that mean "keep polling"
AUTHORIZATION_PENDING = "authorization_pending"
SLOW_DOWN = "slow_down"

# RFC 8628 section 3.5: add 5 seconds to the interval on slow_down
SLOW_DOWN_INCREMENT = 5

DEFAULT_TIMEOUT = 30.0


def device_code_url(config: ProfileConfig) -> str:
    """Device authorization endpoint for the profile's tenant."""
    return f"{config.authority}/{config.tenant_id}/oauth2/v2.0/devicecode"


def token_url(config: ProfileConfig) -> str:
    """Token endpoint for the profile's tenant."""
    return f"{config.authority}/{config.tenant_id}/oauth2/v2.0/token"


def provider_error_code(body: str) -> str | None:
    """Extract the OAuth error code from a token endpoint error body.

    Falls back to a substring check when the body is not JSON, so a pending
    response is never mistaken for a terminal failure.
    """
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]

    for code in (AUTHORIZATION_PENDING, SLOW_DOWN):
        if code in body:
            return code
    return None


class TokenExchangeClient:
    """HTTP client for device-code and refresh-token exchanges.

    Attributes:
        session: requests.Session used for all calls
        clock: Returns the current epoch time; used to stamp expires_at
        sleep: Blocks between polls
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.session = session or requests.Session()
        self.clock = clock
        self.sleep = sleep
        self.timeout = timeout

    def _post(self, url: str, data: dict[str, str]) -> requests.Response:
        """POST a form body, wrapping transport failures with the endpoint."""
        try:
            return self.session.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Request to identity provider failed", url=url, error=str(e))
            raise ProviderError(
                f"Could not reach {url}: {e}. Check your network connection.",
                endpoint=url,
            ) from e

    def _json(self, response: requests.Response, url: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON from {url}: {response.text}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"Unexpected response from {url}: {response.text}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            )
        return data

    def _parse_credential(self, response: requests.Response, url: str) -> Credential:
        """Parse a successful token response and stamp expires_at from the local clock."""
        data = self._json(response, url)
        # The provider's own expires_at (if any) is never trusted
        data.pop("expires_at", None)
        try:
            credential = Credential.model_validate(data)
        except ValidationError as e:
            raise ProviderError(
                f"Malformed token response from {url}: {e}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            ) from e
        return stamp_expiry(credential, self.clock())

    def start_device_flow(self, config: ProfileConfig) -> DeviceAuthorizationSession:
        """Request a device code and user code for interactive sign-in.

        Raises:
            ProviderError: If the provider rejects the request or is unreachable
        """
        url = device_code_url(config)
        logger.debug(
            "Requesting device code",
            url=url,
            client_id=redact(config.client_id),
            scope=config.scope,
        )

        response = self._post(url, {"client_id": config.client_id, "scope": config.scope})
        if not response.ok:
            logger.error(
                "Device code request failed",
                url=url,
                status_code=response.status_code,
            )
            raise ProviderError(
                f"Device code request failed ({response.status_code}):\n{response.text}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            )

        data = self._json(response, url)
        try:
            session = DeviceAuthorizationSession.from_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed device code response from {url}: {response.text}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info(
            "Device code issued",
            verification_uri=session.verification_uri,
            interval=session.interval,
            expires_in=session.expires_in,
        )
        return session

    def poll_for_token(
        self, config: ProfileConfig, session: DeviceAuthorizationSession
    ) -> Credential:
        """Poll the token endpoint until the device code is approved.

        Waits session.interval seconds before every attempt. There is no
        attempt cap: polling continues while the provider reports
        authorization_pending, and stops on success or any other error.

        Raises:
            ProviderError: On any non-pending error; carries the body verbatim
        """
        url = token_url(config)
        data = {
            "grant_type": DEVICE_CODE_GRANT,
            "client_id": config.client_id,
            "device_code": session.device_code,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret

        interval = session.interval
        attempts = 0
        while True:
            self.sleep(interval)
            attempts += 1

            response = self._post(url, data)
            if response.ok:
                credential = self._parse_credential(response, url)
                logger.info(
                    "Device code approved",
                    attempts=attempts,
                    expires_at=credential.expires_at,
                )
                return credential

            body = response.text
            error_code = provider_error_code(body)
            if error_code == AUTHORIZATION_PENDING:
                logger.debug("Authorization pending", attempt=attempts)
                continue
            if error_code == SLOW_DOWN:
                interval += SLOW_DOWN_INCREMENT
                logger.debug("Provider asked to slow down", attempt=attempts, interval=interval)
                continue

            logger.error(
                "Device code polling failed",
                url=url,
                status_code=response.status_code,
                error=error_code,
            )
            raise ProviderError(
                f"Device login failed ({response.status_code}):\n{body}",
                endpoint=url,
                status_code=response.status_code,
                body=body,
            )

    def refresh(self, config: ProfileConfig, refresh_token: str) -> Credential:
        """Exchange a refresh token for a new credential.

        Raises:
            ProviderError: If the provider rejects the refresh or is unreachable
        """
        url = token_url(config)
        data = {
            "grant_type": REFRESH_TOKEN_GRANT,
            "client_id": config.client_id,
            "refresh_token": refresh_token,
            "scope": config.scope,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret

        logger.debug("Refreshing token", url=url, client_id=redact(config.client_id))
        response = self._post(url, data)
        if not response.ok:
            logger.error(
                "Token refresh failed",
                url=url,
                status_code=response.status_code,
                error=provider_error_code(response.text),
            )
            raise ProviderError(
                f"Refresh failed ({response.status_code}):\n{response.text}",
                endpoint=url,
                status_code=response.status_code,
                body=response.text,
            )

        credential = self._parse_credential(response, url)
        logger.info("Token refreshed", expires_at=credential.expires_at)
        return credential

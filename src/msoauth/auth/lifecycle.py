"""Credential lifecycle for a single profile.

Composes the token store, expiry policy and exchange client into the
user-facing operations:

- get_token(): return a usable access token, refreshing or logging in as needed
- force_refresh(): unconditionally refresh with the stored refresh token
- login(): run the full device-code flow
- clear(): delete the stored credential
- refresh_or_login(): force_refresh(), falling back to login() on failure

This is the only place where a failure is turned into a fallback instead of
being reported. The store is written only after a complete, successful
token response.
"""

import time
from collections.abc import Callable

from msoauth.auth.exchange import TokenExchangeClient
from msoauth.auth.expiry import is_usable
from msoauth.auth.models import Credential, DeviceAuthorizationSession
from msoauth.auth.token_store import TokenStore
from msoauth.config_schema import ProfileConfig
from msoauth.core.errors import (
    MissingRefreshTokenError,
    MsOAuthError,
    TokenFileNotFoundError,
)
from msoauth.core.logging import get_logger

logger = get_logger(__name__)

PromptCallback = Callable[[DeviceAuthorizationSession], None]


def _no_prompt(session: DeviceAuthorizationSession) -> None:
    logger.warning(
        "Device login requires user action",
        verification_uri=session.verification_uri,
        user_code=session.user_code,
    )


class TokenLifecycle:
    """Drives one profile's credential through refresh and device login.

    Attributes:
        config: Resolved provider settings for the profile
        profile: Profile name (token store key)
        store: Where the credential is persisted
        client: Performs the HTTP exchanges
        clock: Returns the current epoch time
        on_prompt: Called with the device session so the user can sign in
    """

    def __init__(
        self,
        config: ProfileConfig,
        profile: str,
        store: TokenStore,
        client: TokenExchangeClient,
        clock: Callable[[], float] = time.time,
        on_prompt: PromptCallback | None = None,
    ):
        self.config = config
        self.profile = profile
        self.store = store
        self.client = client
        self.clock = clock
        self.on_prompt = on_prompt or _no_prompt

    def get_token(self) -> str:
        """Return a usable access token.

        Uses the stored token if it is outside the skew window, otherwise
        refreshes it. With no stored credential or no refresh token, falls
        through to device login.

        Raises:
            ProviderError: If the refresh or login exchange fails
            TokenStoreError: If the stored record is unreadable
        """
        try:
            credential = self.store.read(self.profile)
        except TokenFileNotFoundError:
            logger.info("No stored token, starting device login")
            return self.login().access_token

        if is_usable(credential, self.clock()):
            logger.debug("Stored token is valid", expires_at=credential.expires_at)
            return credential.access_token

        if not credential.refresh_token:
            logger.info("Stored token has no refresh token, starting device login")
            return self.login().access_token

        logger.info("Stored token expired or expiring, refreshing", expires_at=credential.expires_at)
        return self._refresh(credential.refresh_token).access_token

    def force_refresh(self) -> Credential:
        """Refresh the stored credential regardless of its expiry.

        Raises:
            TokenFileNotFoundError: If there is no stored credential
            MissingRefreshTokenError: If the stored credential cannot be refreshed
            ProviderError: If the refresh exchange fails
        """
        credential = self.store.read(self.profile)
        if not credential.refresh_token:
            raise MissingRefreshTokenError(
                f"Missing refresh token for profile '{self.profile}'. "
                "Run with --login to sign in again."
            )
        return self._refresh(credential.refresh_token)

    def login(self) -> Credential:
        """Run the device-code flow and store the resulting credential.

        Blocks until the user approves the sign-in or the provider returns a
        terminal error. Any existing credential is replaced only on success.

        Raises:
            ProviderError: If the device flow fails
        """
        session = self.client.start_device_flow(self.config)
        self.on_prompt(session)

        credential = self.client.poll_for_token(self.config, session)
        self.store.write(self.profile, credential)
        logger.info("Device login complete", expires_at=credential.expires_at)
        return credential

    def clear(self) -> bool:
        """Delete the stored credential. Returns True if one was removed."""
        return self.store.clear(self.profile)

    def refresh_or_login(self) -> Credential:
        """Refresh the stored credential, escalating to device login on any failure."""
        try:
            return self.force_refresh()
        except MsOAuthError as e:
            logger.info("Refresh unavailable, falling back to device login", reason=str(e))
            return self.login()

    def _refresh(self, refresh_token: str) -> Credential:
        fresh = self.client.refresh(self.config, refresh_token)
        if not fresh.refresh_token:
            # Provider did not rotate the refresh token; the old one stays valid
            fresh = fresh.model_copy(update={"refresh_token": refresh_token})
        self.store.write(self.profile, fresh)
        return fresh

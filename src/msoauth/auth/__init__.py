"""Token lifecycle for the Microsoft identity platform device-code flow.

Usage:
    from msoauth.auth import TokenExchangeClient, TokenLifecycle, TokenStore
    from msoauth.config import get_token_dir, load_profile

    lifecycle = TokenLifecycle(
        config=load_profile("work"),
        profile="work",
        store=TokenStore(get_token_dir()),
        client=TokenExchangeClient(),
    )

    token = lifecycle.get_token()
"""

from msoauth.auth.exchange import TokenExchangeClient
from msoauth.auth.expiry import SKEW_SECONDS, is_usable
from msoauth.auth.lifecycle import TokenLifecycle
from msoauth.auth.models import Credential, DeviceAuthorizationSession
from msoauth.auth.token_store import TokenStore

__all__ = [
    "Credential",
    "DeviceAuthorizationSession",
    "SKEW_SECONDS",
    "TokenExchangeClient",
    "TokenLifecycle",
    "TokenStore",
    "is_usable",
]

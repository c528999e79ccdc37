"""Expiry policy for stored credentials.

Pure functions only: callers pass the current time in.
"""

from msoauth.auth.models import Credential

# Seconds of validity a token must still have to be handed out
SKEW_SECONDS = 300


def is_usable(credential: Credential, now: float) -> bool:
    """Return True if the credential can be handed to a consumer as-is.

    A credential without expires_at has never been normalized and is never usable.
    """
    if credential.expires_at is None:
        return False
    return credential.expires_at > now + SKEW_SECONDS


def stamp_expiry(credential: Credential, now: float) -> Credential:
    """Return a copy of credential with expires_at = now + expires_in."""
    return credential.model_copy(update={"expires_at": int(now) + credential.expires_in})

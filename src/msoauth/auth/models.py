"""Data types for the token lifecycle.

Credential is what gets persisted per profile. DeviceAuthorizationSession
lives only for the duration of one login attempt and is never written to disk.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """OAuth2 token response, normalized with a locally computed expiry."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int = Field(ge=0)
    # Epoch seconds; set from the local clock at receipt, never from the network
    expires_at: int | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize for the token store, omitting expires_at when unset."""
        data = self.model_dump()
        if data["expires_at"] is None:
            del data["expires_at"]
        return data


@dataclass(frozen=True, slots=True)
class DeviceAuthorizationSession:
    """Device authorization response for one login attempt.

    Attributes:
        device_code: Code the client submits while polling
        user_code: Code the human types at verification_uri
        verification_uri: Where the human completes sign-in
        interval: Seconds to wait between polls
        message: Provider-formatted instructions for the human
        expires_in: Seconds until device_code expires, if reported
    """

    device_code: str
    user_code: str
    verification_uri: str
    interval: int
    message: str = ""
    expires_in: int | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "DeviceAuthorizationSession":
        """Build a session from the device-code endpoint's JSON body.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a numeric field is not numeric
        """
        expires_in = data.get("expires_in")
        return cls(
            device_code=str(data["device_code"]),
            user_code=str(data["user_code"]),
            # Some v1 endpoints say verification_url
            verification_uri=str(data.get("verification_uri") or data["verification_url"]),
            interval=int(data.get("interval", 5)),
            message=str(data.get("message", "")),
            expires_in=int(expires_in) if expires_in is not None else None,
        )

"""Custom exception types for msoauth.

Error messages say what failed, where (path, endpoint, profile), and how to
fix it when there is an obvious fix.
"""


class MsOAuthError(Exception):
    """Base exception for all msoauth errors."""

    pass


class ConfigLoadError(MsOAuthError):
    """Raised when config.yaml cannot be loaded (YAML parse error, bad shape)."""

    pass


class ConfigMissingError(ConfigLoadError):
    """Raised when config.yaml does not exist.

    The message includes a sample config the operator can paste.
    """

    pass


class ConfigValidationError(MsOAuthError):
    """Raised when config.yaml fails Pydantic validation."""

    pass


class ProfileNotFoundError(MsOAuthError):
    """Raised when the requested profile has no entry in config.yaml.

    Attributes:
        profile: The profile name that was requested
        available: Profile names present in the config file
    """

    def __init__(self, message: str, profile: str, available: list[str] | None = None):
        super().__init__(message)
        self.profile = profile
        self.available = available or []


class InvalidProfileNameError(MsOAuthError):
    """Raised when a profile name cannot be mapped to a safe token file name."""

    pass


class TokenStoreError(MsOAuthError):
    """Raised when a token record cannot be read, parsed, or written.

    Attributes:
        path: Path of the token record involved
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class TokenFileNotFoundError(TokenStoreError):
    """Raised when no token record exists for a profile.

    Recoverable: the lifecycle escalates to device login.
    """

    pass


class MissingRefreshTokenError(MsOAuthError):
    """Raised when a stored credential carries no refresh token."""

    pass


class ProviderError(MsOAuthError):
    """Raised when the identity provider rejects a request or cannot be reached.

    Attributes:
        endpoint: URL that was called
        status_code: HTTP status code (None for transport failures)
        body: Response body exactly as returned by the provider
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body

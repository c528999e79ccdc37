"""msoauth - cached OAuth2 access tokens for Microsoft identity platform profiles."""

__version__ = "0.1.0"

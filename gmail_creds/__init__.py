"""Keep Gmail OAuth credentials valid across processes and accounts."""

from .core.config import GMAIL_SCOPES, CredentialSettings, get_settings
from .core.errors import (
    CredentialError,
    InvalidRegistrationFormatError,
    MissingClientRegistrationError,
    MissingCredentialsError,
    MissingRefreshTokenError,
    RefreshFailureError,
)
from .dependencies import get_client_factory, get_authenticated_client
from .services import AuthenticatedClientFactory

__all__ = [
    "AuthenticatedClientFactory",
    "CredentialError",
    "CredentialSettings",
    "GMAIL_SCOPES",
    "InvalidRegistrationFormatError",
    "MissingClientRegistrationError",
    "MissingCredentialsError",
    "MissingRefreshTokenError",
    "RefreshFailureError",
    "get_authenticated_client",
    "get_client_factory",
    "get_settings",
]

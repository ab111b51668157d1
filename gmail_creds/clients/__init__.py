"""Expose constructed client wrappers."""

from .credential_store import CredentialStore
from .google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from .oauth_keys import load_client_registration

__all__ = [
    "CredentialStore",
    "GoogleOAuthClient",
    "OAuthTokenExchangeError",
    "load_client_registration",
]

"""
Process-wide default providers for hosts that serve a single account.

Hosts serving several accounts construct ``AuthenticatedClientFactory`` with
their own ``CredentialSettings`` instead.
"""

from functools import lru_cache

from google.oauth2.credentials import Credentials

from gmail_creds.core.config import get_settings
from gmail_creds.core.logging import configure_logging
from gmail_creds.services.client_factory import AuthenticatedClientFactory


@lru_cache()
def get_client_factory() -> AuthenticatedClientFactory:
    """Provide a factory bound to the environment-configured paths."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return AuthenticatedClientFactory(settings)


async def get_authenticated_client() -> Credentials:
    """Shortcut used by Gmail operations before each API request."""
    return await get_client_factory().get_authenticated_client()


__all__ = ["get_authenticated_client", "get_client_factory"]

"""Service layer exports."""

from .client_factory import AuthenticatedClientFactory
from .google_tokens import GoogleTokenService

__all__ = ["AuthenticatedClientFactory", "GoogleTokenService"]

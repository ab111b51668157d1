"""Persisted and configured OAuth data."""

from .credentials import ClientRegistration, CredentialRecord, TokenGrant

__all__ = ["ClientRegistration", "CredentialRecord", "TokenGrant"]

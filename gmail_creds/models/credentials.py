"""
Domain models for persisted OAuth credentials and the client registration.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class CredentialRecord(BaseModel):
    """Authorization state for one account, mirroring the on-disk JSON."""

    access_token: str
    refresh_token: str = Field(
        "",
        description="Long-lived token; empty means re-authorization is required.",
    )
    scope: str = ""
    token_type: str = "Bearer"
    expiry_date: int = Field(..., description="Access token expiry in epoch milliseconds.")

    @field_validator("refresh_token", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Optional[str]) -> str:
        return value or ""

    def needs_refresh(self, now_ms: int, buffer_ms: int) -> bool:
        """True when the access token expires within ``buffer_ms`` of ``now_ms``."""
        return self.expiry_date < now_ms + buffer_ms

    @property
    def expiry(self) -> datetime:
        """Expiry as a naive UTC datetime, the form google-auth compares against."""
        aware = datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc)
        return aware.replace(tzinfo=None)

    @property
    def scopes(self) -> list[str]:
        return self.scope.split()


class ClientRegistration(BaseModel):
    """OAuth client application identity."""

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    token_uri: str = DEFAULT_TOKEN_URI


class TokenGrant(BaseModel):
    """Successful token endpoint response."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., gt=0)
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


__all__ = [
    "ClientRegistration",
    "CredentialRecord",
    "TokenGrant",
    "DEFAULT_REDIRECT_URI",
    "DEFAULT_TOKEN_URI",
]

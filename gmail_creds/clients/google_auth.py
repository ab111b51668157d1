"""
Google OAuth token endpoint client.

Covers the refresh exchange used on every stale credential plus the two
pieces the one-time consent flow needs: the consent URL and the code exchange.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from gmail_creds.models.credentials import ClientRegistration, TokenGrant


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)

    @property
    def is_grant_rejected(self) -> bool:
        """True when the server refused the grant itself rather than failing."""
        if self.error_code in {"invalid_grant", "unauthorized_client", "invalid_client"}:
            return True
        return self.status_code in {400, 401}


class GoogleOAuthClient:
    """Build Google authorization URLs and talk to the token endpoint."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"

    def __init__(
        self,
        registration: ClientRegistration,
        *,
        scopes: Sequence[str] = (),
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._registration = registration
        self._scopes = tuple(scopes)
        self._timeout = timeout
        self._transport = transport

    @property
    def token_url(self) -> str:
        return self._registration.token_uri

    def build_authorization_url(
        self, state: Optional[str] = None, access_type: str = "offline"
    ) -> str:
        """Construct the Google OAuth consent URL.

        ``prompt=consent`` is forced so Google always returns a refresh token.
        """
        params = {
            "client_id": self._registration.client_id,
            "redirect_uri": self._registration.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._scopes),
            "access_type": access_type,
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for the first set of tokens."""
        payload = {
            "code": code,
            "client_id": self._registration.client_id,
            "client_secret": self._registration.client_secret,
            "redirect_uri": self._registration.redirect_uri,
            "grant_type": "authorization_code",
        }
        return await self._post_token_request(payload)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_id": self._registration.client_id,
            "client_secret": self._registration.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._post_token_request(payload)

    async def _post_token_request(self, payload: dict[str, str]) -> TokenGrant:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(self.token_url, data=payload)

        if response.status_code != httpx.codes.OK:
            raise OAuthTokenExchangeError(
                _describe_error(response),
                status_code=response.status_code,
                error_code=_error_code(response),
            )

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Google.",
                status_code=response.status_code,
            ) from exc


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_code(response: httpx.Response) -> Optional[str]:
    error = _error_body(response).get("error")
    return error if isinstance(error, str) else None


def _describe_error(response: httpx.Response) -> str:
    body = _error_body(response)
    error = body.get("error")
    description = body.get("error_description")
    if isinstance(error, str) and description:
        return f"{error}: {description} (HTTP {response.status_code})"
    if isinstance(error, str):
        return f"{error} (HTTP {response.status_code})"
    return f"HTTP {response.status_code}: {response.text[:200]}"


__all__ = ["GoogleOAuthClient", "OAuthTokenExchangeError"]

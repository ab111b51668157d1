"""
Entry point used by every Gmail operation to obtain valid credentials.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import httpx
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from gmail_creds.clients.credential_store import CredentialStore
from gmail_creds.clients.google_auth import GoogleOAuthClient
from gmail_creds.clients.oauth_keys import load_client_registration
from gmail_creds.core.config import CredentialSettings, get_settings
from gmail_creds.models.credentials import ClientRegistration, CredentialRecord
from gmail_creds.services.google_tokens import GoogleTokenService

logger = logging.getLogger(__name__)


class AuthenticatedClientFactory:
    """Builds Google credentials backed by the on-disk record of one account.

    Nothing is cached here: each call re-reads the registration and the
    credential file so an out-of-process re-authorization is picked up by
    the very next call.
    """

    def __init__(
        self,
        settings: Optional[CredentialSettings] = None,
        *,
        store: Optional[CredentialStore] = None,
        oauth_client: Optional[GoogleOAuthClient] = None,
        clock: Optional[Callable[[], int]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or CredentialStore(self._settings.credentials_file)
        self._oauth_client = oauth_client
        self._clock = clock
        self._transport = transport

    @property
    def store(self) -> CredentialStore:
        return self._store

    def _oauth_for(self, registration: ClientRegistration) -> GoogleOAuthClient:
        if self._oauth_client is not None:
            return self._oauth_client
        return GoogleOAuthClient(
            registration,
            scopes=self._settings.scopes,
            timeout=self._settings.refresh_timeout_seconds,
            transport=self._transport,
        )

    def _token_service(self, registration: ClientRegistration) -> GoogleTokenService:
        return GoogleTokenService(
            self._store,
            self._oauth_for(registration),
            timeout=self._settings.refresh_timeout_seconds,
            clock=self._clock,
        )

    async def get_authenticated_client(self) -> Credentials:
        """Return credentials whose access token is valid for at least five minutes."""
        registration = load_client_registration(self._settings.oauth_keys_file)
        record = await self._token_service(registration).get_valid_record()

        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=registration.token_uri,
            client_id=registration.client_id,
            client_secret=registration.client_secret,
            scopes=record.scopes or list(self._settings.scopes),
            expiry=record.expiry,
        )

    async def build_gmail_service(self) -> Any:
        """Return a Gmail v1 API resource authorized with fresh credentials."""
        credentials = await self.get_authenticated_client()
        return build("gmail", "v1", credentials=credentials, cache_discovery=False)

    def authorization_url(self, state: Optional[str] = None) -> str:
        """Consent URL for the one-time authorization flow."""
        registration = load_client_registration(self._settings.oauth_keys_file)
        return self._oauth_for(registration).build_authorization_url(state)

    async def store_initial_credentials(self, code: str) -> CredentialRecord:
        """Exchange an authorization code and persist the first credential record."""
        registration = load_client_registration(self._settings.oauth_keys_file)
        issued_at = self._clock() if self._clock else int(time.time() * 1000)
        grant = await self._oauth_for(registration).exchange_authorization_code(code)

        if not grant.refresh_token:
            logger.warning(
                "No refresh token received; revoke the app's access and re-authenticate."
            )

        record = CredentialRecord(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or "",
            scope=grant.scope or " ".join(self._settings.scopes),
            token_type=grant.token_type or "Bearer",
            expiry_date=issued_at + grant.expires_in * 1000,
        )
        self._store.save(record)
        logger.info("Saved new credentials to %s", self._store.path)
        return record


__all__ = ["AuthenticatedClientFactory"]

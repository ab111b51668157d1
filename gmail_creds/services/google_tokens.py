"""
Helpers for deciding when a stored Google token is stale and refreshing it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import weakref
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import httpx

from gmail_creds.clients.credential_store import CredentialStore
from gmail_creds.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from gmail_creds.core.errors import (
    MissingCredentialsError,
    MissingRefreshTokenError,
    RefreshFailureError,
)
from gmail_creds.models.credentials import CredentialRecord

logger = logging.getLogger(__name__)

# Process-wide lock per credential path, plus one asyncio.Lock per path per
# event loop so coroutines on the same loop queue without occupying a thread.
_registry_lock = threading.Lock()
_thread_locks: dict[Path, threading.Lock] = {}
_loop_locks: weakref.WeakKeyDictionary[
    asyncio.AbstractEventLoop, dict[Path, asyncio.Lock]
] = weakref.WeakKeyDictionary()


def _locks_for(path: Path) -> tuple[asyncio.Lock, threading.Lock]:
    loop = asyncio.get_running_loop()
    with _registry_lock:
        thread_lock = _thread_locks.setdefault(path, threading.Lock())
        loop_lock = _loop_locks.setdefault(loop, {}).setdefault(path, asyncio.Lock())
    return loop_lock, thread_lock


async def _acquire_thread_lock(lock: threading.Lock) -> None:
    acquiring = asyncio.ensure_future(asyncio.to_thread(lock.acquire))
    try:
        await asyncio.shield(acquiring)
    except asyncio.CancelledError:
        # The worker thread still takes the lock; hand it back once it does.
        acquiring.add_done_callback(
            lambda done: lock.release() if not done.cancelled() and done.result() else None
        )
        raise


@asynccontextmanager
async def _refresh_guard(path: Path) -> AsyncIterator[None]:
    """Serialize refreshes of ``path`` across coroutines and threads."""
    loop_lock, thread_lock = _locks_for(path)
    async with loop_lock:
        await _acquire_thread_lock(thread_lock)
        try:
            yield
        finally:
            thread_lock.release()


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class GoogleTokenService:
    """Keeps the access token of one stored credential record usable."""

    _REFRESH_WINDOW = timedelta(minutes=5)

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: GoogleOAuthClient,
        *,
        timeout: float = 10.0,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._timeout = timeout
        self._clock = clock or _epoch_millis

    @property
    def buffer_ms(self) -> int:
        return int(self._REFRESH_WINDOW.total_seconds() * 1000)

    def _load_usable(self) -> CredentialRecord:
        record = self._store.load()
        if record is None:
            raise MissingCredentialsError(self._store.path)
        if not record.refresh_token:
            raise MissingRefreshTokenError(self._store.path)
        return record

    def needs_refresh(self, record: CredentialRecord) -> bool:
        return record.needs_refresh(self._clock(), self.buffer_ms)

    async def get_valid_record(self) -> CredentialRecord:
        """Return a record whose access token outlives the refresh window.

        Concurrent callers for the same path share a single refresh: whoever
        takes the lock second re-reads the file and finds it already fresh.
        """
        record = self._load_usable()
        if not self.needs_refresh(record):
            return record

        async with _refresh_guard(self._store.path):
            record = self._load_usable()
            if not self.needs_refresh(record):
                logger.debug("Token at %s was refreshed by a concurrent caller", self._store.path)
                return record
            return await self.refresh(record)

    async def refresh(self, record: CredentialRecord) -> CredentialRecord:
        """Exchange the refresh token, persist the result, then return it."""
        if not record.refresh_token:
            raise MissingRefreshTokenError(self._store.path)

        logger.info("Refreshing access token for %s", self._store.path)
        try:
            grant = await asyncio.wait_for(
                self._oauth.refresh_token(record.refresh_token), self._timeout
            )
        except OAuthTokenExchangeError as exc:
            logger.warning("Token endpoint rejected refresh for %s: %s", self._store.path, exc)
            raise RefreshFailureError(
                exc, reauthorization_required=exc.is_grant_rejected
            ) from exc
        except asyncio.TimeoutError as exc:
            logger.warning("Token refresh for %s timed out after %ss", self._store.path, self._timeout)
            raise RefreshFailureError(
                TimeoutError(f"no response within {self._timeout}s"),
                reauthorization_required=False,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Token refresh for %s failed: %s", self._store.path, exc)
            raise RefreshFailureError(exc, reauthorization_required=False) from exc

        refreshed_at = self._clock()
        updated = CredentialRecord(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or record.refresh_token,
            scope=record.scope,
            token_type=record.token_type,
            expiry_date=refreshed_at + grant.expires_in * 1000,
        )
        if updated.expiry_date <= record.expiry_date:
            raise RefreshFailureError(
                ValueError("refreshed token does not expire later than the previous one"),
                reauthorization_required=False,
            )

        try:
            self._store.save(updated)
        except OSError as exc:
            raise RefreshFailureError(exc, reauthorization_required=False) from exc

        if grant.refresh_token and grant.refresh_token != record.refresh_token:
            logger.info("Authorization server rotated the refresh token for %s", self._store.path)
        return updated


__all__ = ["GoogleTokenService"]

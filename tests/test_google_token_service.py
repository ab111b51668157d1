from __future__ import annotations

import asyncio
import threading
import json
from pathlib import Path

import httpx
import pytest

from _factories import HOUR_MS, NOW_MS, credential_payload, write_json
from gmail_creds.clients.credential_store import CredentialStore
from gmail_creds.clients.google_auth import OAuthTokenExchangeError
from gmail_creds.core.errors import (
    MissingCredentialsError,
    MissingRefreshTokenError,
    RefreshFailureError,
)
from gmail_creds.models.credentials import TokenGrant
from gmail_creds.services.google_tokens import GoogleTokenService


class DummyOAuthClient:
    def __init__(
        self,
        *,
        refreshed_token: str = "refreshed-access",
        rotated_refresh_token: str | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.refreshed_token = refreshed_token
        self.rotated_refresh_token = rotated_refresh_token
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        self.calls.append(refresh_token)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return TokenGrant(
            access_token=self.refreshed_token,
            expires_in=3600,
            refresh_token=self.rotated_refresh_token,
        )


class CountingStore(CredentialStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.saves = 0

    def save(self, record) -> None:
        self.saves += 1
        super().save(record)


def _service(tmp_path: Path, oauth_client: DummyOAuthClient, **record) -> tuple[GoogleTokenService, CountingStore]:
    path = tmp_path / "credentials.json"
    if record:
        write_json(path, credential_payload(**record))
    store = CountingStore(path)
    service = GoogleTokenService(store, oauth_client, timeout=1.0, clock=lambda: NOW_MS)
    return service, store


@pytest.mark.asyncio
async def test_fresh_token_is_returned_without_refresh(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS + 5 * 60 * 1000)

    record = await service.get_valid_record()

    assert record.access_token == "initial-access"
    assert oauth_client.calls == []
    assert store.saves == 0


@pytest.mark.asyncio
async def test_token_inside_refresh_window_is_refreshed_and_saved(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS + 5 * 60 * 1000 - 1)

    record = await service.get_valid_record()

    assert record.access_token == "refreshed-access"
    assert record.expiry_date == NOW_MS + HOUR_MS
    assert oauth_client.calls == ["refresh-token"]
    assert store.saves == 1
    stored = json.loads(store.path.read_text(encoding="utf-8"))
    assert stored["access_token"] == "refreshed-access"
    assert stored["expiry_date"] == NOW_MS + HOUR_MS


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_scope_and_type_when_not_rotated(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(
        tmp_path,
        oauth_client,
        expiry_date=NOW_MS - 1000,
        scope="a b",
        token_type="Bearer",
    )

    await service.get_valid_record()

    stored = store.load()
    assert stored.refresh_token == "refresh-token"
    assert stored.scope == "a b"
    assert stored.token_type == "Bearer"


@pytest.mark.asyncio
async def test_rotated_refresh_token_replaces_the_old_one(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(rotated_refresh_token="rotated-refresh")
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)

    await service.get_valid_record()

    assert store.load().refresh_token == "rotated-refresh"


@pytest.mark.asyncio
async def test_missing_record_raises(tmp_path: Path) -> None:
    service, _ = _service(tmp_path, DummyOAuthClient())

    with pytest.raises(MissingCredentialsError):
        await service.get_valid_record()


@pytest.mark.asyncio
async def test_empty_refresh_token_fails_before_any_network_call(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(tmp_path, oauth_client, refresh_token="", expiry_date=NOW_MS - 1000)

    with pytest.raises(MissingRefreshTokenError):
        await service.get_valid_record()

    assert oauth_client.calls == []
    assert store.saves == 0


@pytest.mark.asyncio
async def test_revoked_refresh_token_requires_reauthorization(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(
        error=OAuthTokenExchangeError("invalid_grant", status_code=400, error_code="invalid_grant")
    )
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)
    before = store.path.read_bytes()

    with pytest.raises(RefreshFailureError) as excinfo:
        await service.get_valid_record()

    assert excinfo.value.reauthorization_required
    assert isinstance(excinfo.value.cause, OAuthTokenExchangeError)
    assert "re-authenticate" in str(excinfo.value)
    assert store.path.read_bytes() == before
    assert store.saves == 0


@pytest.mark.asyncio
async def test_network_error_is_reported_as_transient(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(error=httpx.ConnectError("connection refused"))
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)

    with pytest.raises(RefreshFailureError) as excinfo:
        await service.get_valid_record()

    assert not excinfo.value.reauthorization_required
    assert "retry later" in str(excinfo.value)
    assert store.saves == 0


@pytest.mark.asyncio
async def test_slow_token_endpoint_times_out(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(delay=5.0)
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)
    service._timeout = 0.01
    before = store.path.read_bytes()

    with pytest.raises(RefreshFailureError) as excinfo:
        await service.get_valid_record()

    assert not excinfo.value.reauthorization_required
    assert store.path.read_bytes() == before


@pytest.mark.asyncio
async def test_refresh_that_does_not_extend_expiry_is_rejected(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient()
    # Stored expiry is inside the window but later than what the server grants.
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS + HOUR_MS + 1)
    service._REFRESH_WINDOW = service._REFRESH_WINDOW * 20

    with pytest.raises(RefreshFailureError):
        await service.get_valid_record()

    assert store.saves == 0


@pytest.mark.asyncio
async def test_concurrent_callers_share_a_single_refresh(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(delay=0.05)
    service, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)
    other = GoogleTokenService(
        CredentialStore(store.path), oauth_client, timeout=1.0, clock=lambda: NOW_MS
    )

    results = await asyncio.gather(
        service.get_valid_record(),
        other.get_valid_record(),
        service.get_valid_record(),
    )

    assert oauth_client.calls == ["refresh-token"]
    assert store.saves == 1
    assert {record.access_token for record in results} == {"refreshed-access"}


def test_worker_threads_with_their_own_loops_share_a_single_refresh(tmp_path: Path) -> None:
    oauth_client = DummyOAuthClient(delay=0.2)
    _, store = _service(tmp_path, oauth_client, expiry_date=NOW_MS - 1000)
    results: list[str] = []
    errors: list[BaseException] = []

    def worker() -> None:
        service = GoogleTokenService(store, oauth_client, timeout=1.0, clock=lambda: NOW_MS)
        try:
            results.append(asyncio.run(service.get_valid_record()).access_token)
        except BaseException as exc:  # surfaced by the assertions below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert oauth_client.calls == ["refresh-token"]
    assert store.saves == 1
    assert results == ["refreshed-access"] * 3

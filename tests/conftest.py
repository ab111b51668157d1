"""Pytest configuration shared across the suite."""

from __future__ import annotations

from pathlib import Path

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from _factories import NOW_MS
from gmail_creds.core.config import CredentialSettings


@pytest.fixture
def account_dir(tmp_path: Path) -> Path:
    return tmp_path / "account"


@pytest.fixture
def settings(account_dir: Path) -> CredentialSettings:
    return CredentialSettings(
        credentials_path=str(account_dir / "credentials.json"),
        oauth_keys_path=str(account_dir / "oauth-keys.json"),
    )


@pytest.fixture
def clock():
    """Frozen wall clock in epoch milliseconds."""
    return lambda: NOW_MS

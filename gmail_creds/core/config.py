"""
Configuration models and helpers.

Every path the credential manager touches is derived from a settings object
that callers can construct explicitly, so several accounts can be served from
one process without mutating the environment.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from gmail_creds.core.paths import (
    CREDENTIALS_FILE_NAME,
    OAUTH_KEYS_FILE_NAME,
    resolve_path,
)

GMAIL_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.compose",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.labels",
)


class CredentialSettings(BaseSettings):
    """Locations and tunables for the credential lifecycle."""

    credentials_path: Optional[str] = Field(
        None,
        alias="GMAIL_CREDENTIALS_PATH",
        description="Override for the credential record file.",
    )
    oauth_keys_path: Optional[str] = Field(
        None,
        alias="GMAIL_OAUTH_KEYS_PATH",
        description="Override for the OAuth client registration file.",
    )
    refresh_timeout_seconds: float = Field(
        10.0,
        alias="GMAIL_REFRESH_TIMEOUT",
        gt=0,
        description="Upper bound for a single refresh exchange.",
    )
    log_level: str = Field("INFO", alias="GMAIL_LOG_LEVEL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        GMAIL_SCOPES,
        alias="GMAIL_OAUTH_SCOPES",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())

    @property
    def credentials_file(self) -> Path:
        return resolve_path(self.credentials_path, CREDENTIALS_FILE_NAME)

    @property
    def oauth_keys_file(self) -> Path:
        return resolve_path(self.oauth_keys_path, OAUTH_KEYS_FILE_NAME)


@lru_cache()
def get_settings() -> CredentialSettings:
    """Return a cached settings object."""
    return CredentialSettings()  # type: ignore[call-arg]


__all__ = ["CredentialSettings", "GMAIL_SCOPES", "get_settings"]

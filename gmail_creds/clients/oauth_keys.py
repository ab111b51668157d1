"""Load the OAuth client registration downloaded from the Google Cloud Console."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from gmail_creds.core.errors import (
    InvalidRegistrationFormatError,
    MissingClientRegistrationError,
)
from gmail_creds.models.credentials import (
    DEFAULT_REDIRECT_URI,
    DEFAULT_TOKEN_URI,
    ClientRegistration,
)

_REGISTRATION_KEYS = ("web", "installed")


def load_client_registration(path: Path) -> ClientRegistration:
    """Read ``path`` and normalize either the web or installed app format."""
    if not path.exists():
        raise MissingClientRegistrationError(path)

    try:
        content = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidRegistrationFormatError(
            path, f"OAuth keys file could not be parsed: {exc}."
        ) from exc

    keys = None
    if isinstance(content, dict):
        keys = next(
            (content[name] for name in _REGISTRATION_KEYS if isinstance(content.get(name), dict)),
            None,
        )
    if keys is None:
        raise InvalidRegistrationFormatError(path)

    redirect_uris = keys.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
    if not isinstance(redirect_uris, list) or not isinstance(redirect_uris[0], str):
        raise InvalidRegistrationFormatError(path, "redirect_uris must be a list of strings.")

    try:
        return ClientRegistration(
            client_id=keys.get("client_id"),
            client_secret=keys.get("client_secret"),
            redirect_uri=redirect_uris[0],
            token_uri=keys.get("token_uri") or DEFAULT_TOKEN_URI,
        )
    except ValidationError as exc:
        fields = ", ".join(sorted({str(error["loc"][0]) for error in exc.errors()}))
        raise InvalidRegistrationFormatError(
            path, f"OAuth keys file has missing or invalid {fields}."
        ) from exc


__all__ = ["load_client_registration"]

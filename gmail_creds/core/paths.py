"""
Filesystem locations for the credential record and OAuth client registration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

APP_DIR_NAME = ".gmail-mcp"
CREDENTIALS_FILE_NAME = "credentials.json"
OAUTH_KEYS_FILE_NAME = "oauth-keys.json"


def expand_path(raw: str) -> Path:
    """Expand a leading ``~`` and join relative paths onto the cwd without following symlinks."""
    if raw.startswith("~"):
        return Path.home().joinpath(raw[1:].lstrip("/\\"))
    return Path(os.path.abspath(raw))


def resolve_path(override: Optional[str], default_suffix: str) -> Path:
    """Return the override when given, otherwise ``~/.gmail-mcp/<default_suffix>``."""
    if override:
        return expand_path(override)
    return Path.home() / APP_DIR_NAME / default_suffix


__all__ = [
    "APP_DIR_NAME",
    "CREDENTIALS_FILE_NAME",
    "OAUTH_KEYS_FILE_NAME",
    "expand_path",
    "resolve_path",
]

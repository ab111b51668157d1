"""JSON file store holding the credential record for one account."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from gmail_creds.models.credentials import CredentialRecord

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read and atomically replace the credential file at ``path``.

    Nothing is cached between calls; the file is the single source of truth.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[CredentialRecord]:
        """Return the stored record, or ``None`` when missing or unreadable."""
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            return CredentialRecord.model_validate(json.loads(raw.decode("utf-8")))
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return None

    def save(self, record: CredentialRecord) -> None:
        """Write ``record`` to a temp file and rename it over the target."""
        parent = self._path.parent
        parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(record.model_dump(), handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved credential record to %s", self._path)


__all__ = ["CredentialStore"]

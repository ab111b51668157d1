"""
Exceptions raised while obtaining an authenticated Gmail client.

Each error carries a remediation hint so the message is actionable for the
end user without reading the source.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

AUTH_COMMAND_HINT = (
    "Run the authorization flow "
    "(AuthenticatedClientFactory.store_initial_credentials) to authenticate."
)
REAUTH_HINT = AUTH_COMMAND_HINT.replace("to authenticate", "to re-authenticate")


class CredentialError(Exception):
    """Base exception for credential lifecycle failures."""

    remediation: str = ""

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        if remediation is not None:
            self.remediation = remediation
        self.message = message
        super().__init__(f"{message} {self.remediation}".strip())


class MissingClientRegistrationError(CredentialError):
    """Raised when the OAuth client registration file does not exist."""

    remediation = (
        "Create it with the OAuth client JSON downloaded from the Google Cloud Console."
    )

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"OAuth keys file not found: {path}.")


class InvalidRegistrationFormatError(CredentialError):
    """Raised when the registration file has neither a 'web' nor 'installed' section."""

    remediation = "Expected 'web' or 'installed' credentials with client_id and client_secret."

    def __init__(self, path: Path, detail: str = "Invalid OAuth keys file format.") -> None:
        self.path = path
        super().__init__(f"{detail} ({path})")


class MissingCredentialsError(CredentialError):
    """Raised when no usable credential record is stored."""

    remediation = AUTH_COMMAND_HINT

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No credentials found at {path}.")


class MissingRefreshTokenError(CredentialError):
    """Raised when the stored record has no refresh token to renew with."""

    remediation = REAUTH_HINT

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No refresh token found in {path}.")


class RefreshFailureError(CredentialError):
    """Raised when exchanging the refresh token for a new access token fails."""

    def __init__(self, cause: BaseException, *, reauthorization_required: bool) -> None:
        self.cause = cause
        self.reauthorization_required = reauthorization_required
        if reauthorization_required:
            remediation = (
                "The refresh token was rejected (likely revoked or expired). " + REAUTH_HINT
            )
        else:
            remediation = "This looks transient; retry later."
        super().__init__(
            f"Failed to refresh access token: {cause}.", remediation=remediation
        )


__all__ = [
    "AUTH_COMMAND_HINT",
    "REAUTH_HINT",
    "CredentialError",
    "InvalidRegistrationFormatError",
    "MissingClientRegistrationError",
    "MissingCredentialsError",
    "MissingRefreshTokenError",
    "RefreshFailureError",
]

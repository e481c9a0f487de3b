"""Authorization errors."""

from __future__ import annotations

from gmail_skill.auth.constants import AUTH_COMMAND


class GmailAuthError(RuntimeError):
    """Base class for authorization failures."""

    hint: str = f"Run: {AUTH_COMMAND}"

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class MissingCredentialsError(GmailAuthError):
    """The OAuth client credentials file is absent or malformed."""

    hint = (
        "Download an OAuth client (Desktop app) JSON from the Google Cloud Console "
        "and save it to the credentials path, or set GMAIL_SKILL_CREDENTIALS."
    )


class NotAuthenticatedError(GmailAuthError):
    """No token has been stored yet."""


class RefreshFailedError(GmailAuthError):
    """The stored token could not be refreshed."""


class CsrfMismatchError(GmailAuthError):
    """The callback's state parameter does not match this session."""


class ProviderDeniedError(GmailAuthError):
    """Consent was rejected or Google returned an error."""


class AuthorizationTimeoutError(GmailAuthError):
    """No callback arrived before the deadline."""


class PortInUseError(GmailAuthError):
    """The local callback server could not bind its port."""

    hint = "Free the port or set GMAIL_SKILL_PORT to another value registered as a redirect URI."

"""Gmail OAuth module."""

from gmail_skill.auth.errors import (
    AuthorizationTimeoutError,
    CsrfMismatchError,
    GmailAuthError,
    MissingCredentialsError,
    NotAuthenticatedError,
    PortInUseError,
    ProviderDeniedError,
    RefreshFailedError,
)
from gmail_skill.auth.flow import GmailAuth
from gmail_skill.auth.models import AuthConfig, ClientCredentials, GmailToken, is_token_expired
from gmail_skill.auth.storage import save_token_file

__all__ = [
    "AuthConfig",
    "AuthorizationTimeoutError",
    "ClientCredentials",
    "CsrfMismatchError",
    "GmailAuth",
    "GmailAuthError",
    "GmailToken",
    "MissingCredentialsError",
    "NotAuthenticatedError",
    "PortInUseError",
    "ProviderDeniedError",
    "RefreshFailedError",
    "is_token_expired",
    "save_token_file",
]

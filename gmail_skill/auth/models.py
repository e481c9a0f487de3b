"""Gmail OAuth data models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gmail_skill.auth.constants import (
    CALLBACK_PATH,
    CALLBACK_TIMEOUT_SEC,
    DEFAULT_PORT,
    EXPIRY_BUFFER_MS,
    GMAIL_SCOPES,
)

_TOKEN_FIELDS = ("access_token", "refresh_token", "expiry_date", "scope", "token_type")


@dataclass(frozen=True)
class AuthConfig:
    """Where the authorizer reads credentials and keeps its token."""

    credentials_path: Path
    token_path: Path
    port: int = DEFAULT_PORT
    timeout: float = CALLBACK_TIMEOUT_SEC
    scopes: tuple[str, ...] = GMAIL_SCOPES

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self.port}{CALLBACK_PATH}"


@dataclass(frozen=True)
class ClientCredentials:
    """OAuth client registration loaded from the credentials file."""

    client_id: str
    client_secret: str
    redirect_uris: tuple[str, ...] = ()


@dataclass
class GmailToken:
    """Gmail OAuth token data structure."""

    access_token: str
    refresh_token: str | None = None
    expiry_date: int | None = None
    scope: str = ""
    token_type: str = "Bearer"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GmailToken":
        expiry = data.get("expiry_date")
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=data.get("refresh_token") or None,
            expiry_date=int(expiry) if expiry is not None else None,
            scope=data.get("scope") or "",
            token_type=data.get("token_type") or "Bearer",
            extra={k: v for k, v in data.items() if k not in _TOKEN_FIELDS},
        )

    @classmethod
    def from_token_response(cls, payload: dict[str, Any], now_ms: int | None = None) -> "GmailToken":
        """Build a token from a Google token endpoint response."""
        access = payload.get("access_token")
        if not access:
            raise ValueError("Token response missing access_token")
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        expires_in = payload.get("expires_in")
        expiry = now_ms + int(expires_in) * 1000 if expires_in is not None else None
        extra = {
            k: v
            for k, v in payload.items()
            if k not in _TOKEN_FIELDS and k not in ("expires_in", "refresh_token_expires_in")
        }
        return cls(
            access_token=str(access),
            refresh_token=payload.get("refresh_token") or None,
            expiry_date=expiry,
            scope=payload.get("scope") or "",
            token_type=payload.get("token_type") or "Bearer",
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry_date": self.expiry_date,
            "scope": self.scope,
            "token_type": self.token_type,
        }
        data.update(self.extra)
        return data

    @property
    def scopes(self) -> list[str]:
        return self.scope.split()

    def is_expired(self, now_ms: int | None = None) -> bool:
        return is_token_expired(self, now_ms)


def is_token_expired(token: GmailToken | None, now_ms: int | None = None) -> bool:
    """Whether a token is inside the refresh buffer or past its expiry.

    Tokens without an expiry date are treated as valid.
    """
    if token is None or token.expiry_date is None:
        return False
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms >= token.expiry_date - EXPIRY_BUFFER_MS

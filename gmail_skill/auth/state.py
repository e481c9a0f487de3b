"""CSRF state and authorization URL helpers."""

from __future__ import annotations

import secrets
import urllib.parse
from typing import Iterable

from gmail_skill.auth.constants import AUTHORIZE_URL


def create_state() -> str:
    return secrets.token_urlsafe(32)


def state_matches(expected: str, received: str | None) -> bool:
    if not received:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: Iterable[str],
    state: str,
) -> str:
    """Consent URL asking for offline access so Google issues a refresh token."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def parse_callback_query(query: str) -> tuple[str | None, str | None, str | None]:
    """Return ``(code, state, error)`` from a callback query string."""
    qs = urllib.parse.parse_qs(query)
    code = qs.get("code", [None])[0]
    state = qs.get("state", [None])[0]
    error = qs.get("error", [None])[0]
    return code, state, error

"""Credential and token storage helpers."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

from gmail_skill.auth.errors import MissingCredentialsError
from gmail_skill.auth.models import ClientCredentials, GmailToken
from gmail_skill.utils.helpers import ensure_private_dir

logger = logging.getLogger(__name__)


def load_client_credentials(path: Path) -> ClientCredentials:
    """Read the OAuth client from a Google credentials JSON file."""
    if not path.exists():
        raise MissingCredentialsError(f"OAuth credentials not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise MissingCredentialsError(f"Could not read OAuth credentials at {path}: {exc}") from exc

    section = None
    if isinstance(data, dict):
        section = data.get("installed") or data.get("web")
    if not isinstance(section, dict):
        raise MissingCredentialsError(f"{path} has no 'installed' or 'web' client section")

    client_id = section.get("client_id")
    client_secret = section.get("client_secret")
    if not client_id or not client_secret:
        raise MissingCredentialsError(f"{path} is missing client_id or client_secret")

    return ClientCredentials(
        client_id=str(client_id),
        client_secret=str(client_secret),
        redirect_uris=tuple(section.get("redirect_uris") or ()),
    )


def load_token_file(path: Path) -> GmailToken | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return GmailToken.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable token file %s: %s", path, exc)
        return None


def save_token_file(path: Path, token: GmailToken) -> None:
    """Write the token; the directory ends up 0700 and the file 0600 regardless of umask."""
    ensure_private_dir(path.parent)
    payload = json.dumps(token.to_dict(), ensure_ascii=True, indent=2)
    # Written to a sibling file and swapped in; a crash never leaves a partial token.
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            os.fchmod(fp.fileno(), 0o600)
            fp.write(payload)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise
    logger.debug("Saved token to %s", path)


def delete_token_file(path: Path) -> bool:
    """Remove the stored token; return whether a file was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True

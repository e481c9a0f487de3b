"""Configuration loading."""

from __future__ import annotations

import os
from pathlib import Path

from gmail_skill.auth.constants import CREDENTIALS_FILENAME, DEFAULT_PORT, TOKEN_FILENAME
from gmail_skill.auth.models import AuthConfig

CONFIG_DIR_NAME = "gmail-skill"


def get_config_dir() -> Path:
    """Get the per-user configuration directory."""
    override = os.environ.get("GMAIL_SKILL_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / CONFIG_DIR_NAME


def load_auth_config() -> AuthConfig:
    """Build the auth configuration from the environment."""
    config_dir = get_config_dir()
    credentials = os.environ.get("GMAIL_SKILL_CREDENTIALS")
    credentials_path = Path(credentials).expanduser() if credentials else config_dir / CREDENTIALS_FILENAME

    port = DEFAULT_PORT
    raw_port = os.environ.get("GMAIL_SKILL_PORT")
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"GMAIL_SKILL_PORT must be an integer, got {raw_port!r}") from exc

    return AuthConfig(
        credentials_path=credentials_path,
        token_path=config_dir / TOKEN_FILENAME,
        port=port,
    )

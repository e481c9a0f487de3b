from pathlib import Path

import pytest

from gmail_skill.config.loader import get_config_dir, load_auth_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GMAIL_SKILL_CONFIG_DIR", "GMAIL_SKILL_CREDENTIALS", "GMAIL_SKILL_PORT", "XDG_CONFIG_HOME"):
        monkeypatch.delenv(name, raising=False)


def test_config_dir_defaults_to_dot_config(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_config_dir() == tmp_path / ".config" / "gmail-skill"


def test_config_dir_follows_xdg(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    assert get_config_dir() == tmp_path / "xdg" / "gmail-skill"


def test_config_dir_override_wins(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("GMAIL_SKILL_CONFIG_DIR", str(tmp_path / "custom"))
    assert get_config_dir() == tmp_path / "custom"


def test_load_auth_config_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GMAIL_SKILL_CONFIG_DIR", str(tmp_path))
    config = load_auth_config()
    assert config.credentials_path == tmp_path / "credentials.json"
    assert config.token_path == tmp_path / "token.json"
    assert config.port == 3000
    assert config.timeout == 300
    assert config.redirect_uri == "http://localhost:3000/callback"
    assert len(config.scopes) == 3


def test_load_auth_config_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GMAIL_SKILL_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("GMAIL_SKILL_CREDENTIALS", str(tmp_path / "elsewhere" / "client.json"))
    monkeypatch.setenv("GMAIL_SKILL_PORT", "8765")
    config = load_auth_config()
    assert config.credentials_path == Path(tmp_path / "elsewhere" / "client.json")
    assert config.token_path == tmp_path / "token.json"
    assert config.redirect_uri == "http://localhost:8765/callback"


def test_load_auth_config_rejects_bad_port(monkeypatch) -> None:
    monkeypatch.setenv("GMAIL_SKILL_PORT", "http")
    with pytest.raises(ValueError, match="GMAIL_SKILL_PORT"):
        load_auth_config()

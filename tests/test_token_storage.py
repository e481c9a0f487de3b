import json
import os
import stat
import time

import pytest

from gmail_skill.auth.errors import MissingCredentialsError
from gmail_skill.auth.models import GmailToken, is_token_expired
from gmail_skill.auth.storage import (
    delete_token_file,
    load_client_credentials,
    load_token_file,
    save_token_file,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def test_token_without_expiry_is_never_expired() -> None:
    assert is_token_expired(GmailToken(access_token="test")) is False
    assert is_token_expired(None) is False


def test_token_expiry_uses_five_minute_buffer() -> None:
    now = _now_ms()
    assert is_token_expired(GmailToken("a", expiry_date=now + 3_600_000), now_ms=now) is False
    assert is_token_expired(GmailToken("a", expiry_date=now + 5 * 60 * 1000 + 1), now_ms=now) is False
    assert is_token_expired(GmailToken("a", expiry_date=now + 5 * 60 * 1000), now_ms=now) is True
    assert is_token_expired(GmailToken("a", expiry_date=now + 60_000), now_ms=now) is True
    assert is_token_expired(GmailToken("a", expiry_date=now - 1000), now_ms=now) is True


def test_token_from_response_computes_expiry() -> None:
    token = GmailToken.from_token_response(
        {
            "access_token": "ya29.a",
            "refresh_token": "1//r",
            "expires_in": 3599,
            "scope": "s1 s2",
            "token_type": "Bearer",
            "id_token": "jwt",
        },
        now_ms=1_000,
    )
    assert token.expiry_date == 1_000 + 3_599_000
    assert token.scopes == ["s1", "s2"]
    assert token.extra == {"id_token": "jwt"}


def test_token_from_response_requires_access_token() -> None:
    with pytest.raises(ValueError):
        GmailToken.from_token_response({"expires_in": 10})


def test_save_token_file_sets_owner_only_permissions(tmp_path) -> None:
    old_umask = os.umask(0)
    try:
        path = tmp_path / "config" / "gmail-skill" / "token.json"
        save_token_file(path, GmailToken("ya29.a", "1//r", 123, "scope", "Bearer"))
    finally:
        os.umask(old_umask)

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert stat.S_IMODE(path.parent.stat().st_mode) == 0o700


def test_save_token_file_tightens_existing_permissions(tmp_path) -> None:
    directory = tmp_path / "gmail-skill"
    directory.mkdir(mode=0o755)
    os.chmod(directory, 0o755)
    path = directory / "token.json"
    path.write_text("{}")
    os.chmod(path, 0o644)

    save_token_file(path, GmailToken("ya29.a"))

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert stat.S_IMODE(directory.stat().st_mode) == 0o700


def test_token_file_round_trip_keeps_format(tmp_path) -> None:
    path = tmp_path / "token.json"
    token = GmailToken("ya29.a", "1//r", 1700000000000, "s1 s2", "Bearer", extra={"id_token": "jwt"})
    save_token_file(path, token)

    data = json.loads(path.read_text())
    assert data["access_token"] == "ya29.a"
    assert data["refresh_token"] == "1//r"
    assert data["expiry_date"] == 1700000000000
    assert data["scope"] == "s1 s2"
    assert data["token_type"] == "Bearer"
    assert data["id_token"] == "jwt"
    assert load_token_file(path) == token


def test_load_token_file_missing_or_corrupt(tmp_path) -> None:
    path = tmp_path / "token.json"
    assert load_token_file(path) is None
    path.write_text("{not json")
    assert load_token_file(path) is None
    path.write_text(json.dumps({"refresh_token": "only"}))
    assert load_token_file(path) is None
    for content in ("[]", '"x"', "null", "42"):
        path.write_text(content)
        assert load_token_file(path) is None


def test_save_token_file_replaces_without_leftovers(tmp_path) -> None:
    path = tmp_path / "gmail-skill" / "token.json"
    save_token_file(path, GmailToken("ya29.first", "1//r"))
    save_token_file(path, GmailToken("ya29.second", "1//r"))

    assert load_token_file(path).access_token == "ya29.second"
    assert sorted(p.name for p in path.parent.iterdir()) == ["token.json"]
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_save_token_file_failure_keeps_previous_token(tmp_path, monkeypatch) -> None:
    path = tmp_path / "gmail-skill" / "token.json"
    save_token_file(path, GmailToken("ya29.first", "1//r"))

    def _fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("gmail_skill.auth.storage.os.replace", _fail_replace)
    with pytest.raises(OSError):
        save_token_file(path, GmailToken("ya29.second", "1//r"))
    monkeypatch.undo()

    assert load_token_file(path).access_token == "ya29.first"
    assert sorted(p.name for p in path.parent.iterdir()) == ["token.json"]


def test_delete_token_file(tmp_path) -> None:
    path = tmp_path / "token.json"
    assert delete_token_file(path) is False
    save_token_file(path, GmailToken("a"))
    assert delete_token_file(path) is True
    assert not path.exists()


def test_load_client_credentials_installed_and_web(tmp_path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "id.apps.googleusercontent.com",
                    "client_secret": "secret",
                    "redirect_uris": ["http://localhost"],
                }
            }
        )
    )
    creds = load_client_credentials(path)
    assert creds.client_id == "id.apps.googleusercontent.com"
    assert creds.client_secret == "secret"
    assert creds.redirect_uris == ("http://localhost",)

    path.write_text(json.dumps({"web": {"client_id": "web-id", "client_secret": "web-secret"}}))
    creds = load_client_credentials(path)
    assert creds.client_id == "web-id"
    assert creds.redirect_uris == ()


def test_load_client_credentials_missing(tmp_path) -> None:
    with pytest.raises(MissingCredentialsError):
        load_client_credentials(tmp_path / "credentials.json")


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"other": {}}),
        json.dumps({"installed": {"client_id": "only-id"}}),
        json.dumps(["installed"]),
    ],
)
def test_load_client_credentials_malformed(tmp_path, content: str) -> None:
    path = tmp_path / "credentials.json"
    path.write_text(content)
    with pytest.raises(MissingCredentialsError):
        load_client_credentials(path)

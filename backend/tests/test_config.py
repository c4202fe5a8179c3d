import json

import pytest

from notez.config import load_settings


def test_missing_secret_is_an_error(monkeypatch):
    monkeypatch.delenv("NOTEZ_SECRET", raising=False)
    with pytest.raises(RuntimeError):
        load_settings()


def test_settings_from_environment(tmp_path, monkeypatch):
    allowed_file = tmp_path / "allowedUser.json"
    allowed_file.write_text(json.dumps(["111", 222]), encoding="utf-8")

    monkeypatch.setenv("NOTEZ_SECRET", "dev-secret-for-tests")
    monkeypatch.setenv("NOTEZ_ALLOWED_USERS", "u1, u2,,")
    monkeypatch.setenv("NOTEZ_ALLOWED_USERS_FILE", str(allowed_file))
    monkeypatch.setenv("NOTEZ_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("NOTEZ_MEDIA_DIR", raising=False)
    monkeypatch.setenv("NOTEZ_SESSION_MINUTES", "30")
    monkeypatch.setenv("NOTEZ_ENFORCE_OWNERSHIP", "yes")
    monkeypatch.setenv("NOTEZ_STORE_TIMEOUT_MS", "not-a-number")
    monkeypatch.setenv("NOTEZ_HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("NOTEZ_LOG_LEVEL", "debug")

    s = load_settings()
    assert s.allowed_users == frozenset({"u1", "u2", "111", "222"})
    assert s.data_dir == tmp_path / "data"
    assert s.media_dir_path() == tmp_path / "data" / "media"
    assert s.session_minutes == 30
    assert s.enforce_ownership is True
    assert s.store_timeout_ms == 5000
    assert s.http_timeout_seconds == 2.5
    assert s.log_level == "DEBUG"


def test_allowed_users_file_must_hold_a_list(tmp_path, monkeypatch):
    bad = tmp_path / "allowed.json"
    bad.write_text(json.dumps({"users": ["1"]}), encoding="utf-8")
    monkeypatch.setenv("NOTEZ_SECRET", "dev-secret-for-tests")
    monkeypatch.setenv("NOTEZ_ALLOWED_USERS_FILE", str(bad))

    with pytest.raises(ValueError):
        load_settings()


def test_callback_url(monkeypatch):
    monkeypatch.setenv("NOTEZ_SECRET", "dev-secret-for-tests")
    monkeypatch.setenv("NOTEZ_SERVER_URL", "https://notes.example.org/")
    monkeypatch.delenv("NOTEZ_ALLOWED_USERS_FILE", raising=False)

    assert load_settings().callback_url("github") == "https://notes.example.org/auth/github/callback"

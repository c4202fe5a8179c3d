from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from notez.config import Settings
from notez.main import create_app
from notez.models.auth import SessionIdentity
from notez.utils.session_token import SESSION_COOKIE, create_session_token

ALLOWED_USERS = frozenset({"u1", "u2", "42"})

# the cookie jar files cookies for the dotless host "testserver" under this name
COOKIE_DOMAIN = "testserver.local"


@pytest.fixture()
def settings(tmp_path):
    # isolate data dir per test
    return Settings(
        secret="dev-secret-for-tests",
        allowed_users=ALLOWED_USERS,
        data_dir=tmp_path / "data",
        media_dir=tmp_path / "media",
        github_client_id="gh-client",
        github_client_secret="gh-secret",
        discord_client_id="dc-client",
        discord_client_secret="dc-secret",
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def sign_in(settings):
    """Put a session cookie for the given user into a client's cookie jar."""

    def _sign_in(client: TestClient, user_id: str, name: str = "", expired: bool = False) -> None:
        token_settings = replace(settings, session_minutes=-5) if expired else settings
        identity = SessionIdentity(user_id=user_id, name=name or f"User {user_id}", provider="github")
        client.cookies.set(SESSION_COOKIE, create_session_token(identity, token_settings), domain=COOKIE_DOMAIN)

    return _sign_in


@pytest.fixture()
def login_as(client, sign_in):
    def _login(user_id: str, name: str = "", expired: bool = False) -> None:
        sign_in(client, user_id, name=name, expired=expired)

    return _login

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from notez.main import create_app
from notez.utils.oauth_state import STATE_COOKIE
from notez.utils.session_token import SESSION_COOKIE


def _provider_api(profile_status=200, token_body=None):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.endswith("/access_token") or request.url.path.endswith("/oauth2/token"):
            return httpx.Response(200, json=token_body if token_body is not None else {"access_token": "tok-123"})
        if request.url.host == "api.github.com":
            return httpx.Response(profile_status, json={"id": 42, "login": "ann", "name": None})
        if request.url.host == "discord.com" and "/users/" in request.url.path:
            return httpx.Response(profile_status, json={"id": "u1", "username": "bob", "global_name": "Bob"})
        return httpx.Response(404)

    return handler, calls


def _client(settings, handler):
    return TestClient(create_app(settings, http_transport=httpx.MockTransport(handler)))


def _start(client, provider="github"):
    r = client.get(f"/auth/{provider}", follow_redirects=False)
    assert r.status_code == 302
    query = parse_qs(urlparse(r.headers["location"]).query)
    return r, query["state"][0]


def test_login_page_lists_configured_providers(client):
    r = client.get("/login")
    assert r.status_code == 200
    assert "/auth/github" in r.text
    assert "/auth/discord" in r.text


def test_login_page_redirects_signed_in_users_home(client, login_as):
    login_as("42")
    r = client.get("/login", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"


def test_logout_clears_the_session(client, login_as):
    login_as("42")
    r = client.get("/logout")
    assert r.status_code == 200
    assert SESSION_COOKIE not in client.cookies

    r = client.get("/", follow_redirects=False)
    assert r.headers["location"] == "/login"


def test_logout_works_for_unlisted_users(client, login_as):
    login_as("mallory")
    r = client.get("/logout", follow_redirects=False)
    assert r.status_code == 200


def test_start_redirects_to_provider_with_state(client, settings):
    r, state = _start(client)
    location = urlparse(r.headers["location"])
    query = parse_qs(location.query)

    assert location.netloc == "github.com"
    assert query["client_id"] == ["gh-client"]
    assert query["redirect_uri"] == [settings.callback_url("github")]
    assert query["scope"] == ["user:email"]
    assert state.startswith(client.cookies[STATE_COOKIE] + ".")


def test_unknown_provider_is_404(client):
    assert client.get("/auth/myspace", follow_redirects=False).status_code == 404
    assert client.get("/auth/myspace/callback?code=x", follow_redirects=False).status_code == 404


def test_github_callback_signs_the_user_in(settings):
    handler, calls = _provider_api()
    client = _client(settings, handler)
    _, state = _start(client)

    r = client.get(f"/auth/github/callback?code=abc&state={state}", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert SESSION_COOKIE in client.cookies

    token_call = calls[0]
    assert parse_qs(token_call.content.decode())["code"] == ["abc"]
    assert calls[1].headers["authorization"] == "Bearer tok-123"

    # github id 42 is allow-listed
    r = client.get("/", follow_redirects=False)
    assert r.status_code == 200
    assert "ann" in r.text


def test_discord_callback_uses_discord_profile(settings):
    handler, _ = _provider_api()
    client = _client(settings, handler)
    _, state = _start(client, "discord")

    client.get(f"/auth/discord/callback?code=abc&state={state}", follow_redirects=False)
    r = client.get("/notes/new")
    assert r.status_code == 200
    assert 'value="u1"' in r.text
    assert 'value="Bob"' in r.text


@pytest.mark.parametrize("query", ["code=abc&state=forged.mac", "code=abc", "error=access_denied"])
def test_bad_callbacks_go_back_to_login(settings, query):
    handler, calls = _provider_api()
    client = _client(settings, handler)
    _start(client)

    r = client.get(f"/auth/github/callback?{query}", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"
    assert SESSION_COOKIE not in client.cookies
    assert calls == []


def test_state_from_another_browser_is_refused(settings):
    handler, _ = _provider_api()
    attacker = _client(settings, handler)
    _, state = _start(attacker)

    victim = _client(settings, handler)
    _start(victim)
    r = victim.get(f"/auth/github/callback?code=abc&state={state}", follow_redirects=False)
    assert r.headers["location"] == "/login"
    assert SESSION_COOKIE not in victim.cookies


@pytest.mark.parametrize("token_body,profile_status", [({"error": "bad_verification_code"}, 200), (None, 500)])
def test_provider_failures_go_back_to_login(settings, token_body, profile_status):
    handler, _ = _provider_api(profile_status=profile_status, token_body=token_body)
    client = _client(settings, handler)
    _, state = _start(client)

    r = client.get(f"/auth/github/callback?code=abc&state={state}", follow_redirects=False)
    assert r.headers["location"] == "/login"
    assert SESSION_COOKIE not in client.cookies


def test_unlisted_user_can_sign_in_but_is_logged_out_by_the_gate(settings):
    def handler(request):
        if request.url.path.endswith("/access_token"):
            return httpx.Response(200, json={"access_token": "t"})
        return httpx.Response(200, json={"id": 999, "login": "stranger"})

    client = _client(settings, handler)
    _, state = _start(client)
    client.get(f"/auth/github/callback?code=abc&state={state}", follow_redirects=False)

    r = client.get("/", follow_redirects=False)
    assert r.headers["location"] == "/logout"

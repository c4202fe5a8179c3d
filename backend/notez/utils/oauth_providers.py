"""Authorization-code handshakes for the supported sign-in providers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urlencode

import httpx

from notez.config import Settings
from notez.models.auth import ProviderProfile

log = logging.getLogger(__name__)


class OAuthError(Exception):
    pass


def _github_profile(data: dict[str, Any]) -> ProviderProfile:
    return ProviderProfile(
        id=str(data["id"]),
        name=data.get("name") or data.get("login") or "",
        provider="github",
    )


def _discord_profile(data: dict[str, Any]) -> ProviderProfile:
    return ProviderProfile(
        id=str(data["id"]),
        name=data.get("global_name") or data.get("username") or "",
        provider="discord",
    )


@dataclass(frozen=True)
class OAuthProvider:
    name: str
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str
    client_id: str
    client_secret: str
    parse_profile: Callable[[dict[str, Any]], ProviderProfile]

    def authorize_redirect(self, redirect_uri: str, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        })
        return f"{self.authorize_url}?{query}"

    def exchange_code(self, client: httpx.Client, code: str, redirect_uri: str) -> str:
        try:
            r = client.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
            r.raise_for_status()
            token = r.json().get("access_token")
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthError(f"{self.name}: token exchange failed: {exc}") from exc
        if not token:
            raise OAuthError(f"{self.name}: no access token in response")
        return token

    def fetch_profile(self, client: httpx.Client, access_token: str) -> ProviderProfile:
        try:
            r = client.get(
                self.profile_url,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
            r.raise_for_status()
            return self.parse_profile(r.json())
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise OAuthError(f"{self.name}: profile lookup failed: {exc}") from exc


def configured_providers(settings: Settings) -> dict[str, OAuthProvider]:
    """Providers with client credentials set; the others are left out."""
    providers: dict[str, OAuthProvider] = {}
    if settings.github_client_id and settings.github_client_secret:
        providers["github"] = OAuthProvider(
            name="github",
            authorize_url="https://github.com/login/oauth/authorize",
            token_url="https://github.com/login/oauth/access_token",
            profile_url="https://api.github.com/user",
            scope="user:email",
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            parse_profile=_github_profile,
        )
    if settings.discord_client_id and settings.discord_client_secret:
        providers["discord"] = OAuthProvider(
            name="discord",
            authorize_url="https://discord.com/api/oauth2/authorize",
            token_url="https://discord.com/api/oauth2/token",
            profile_url="https://discord.com/api/users/@me",
            scope="identify email",
            client_id=settings.discord_client_id,
            client_secret=settings.discord_client_secret,
            parse_profile=_discord_profile,
        )
    if not providers:
        log.warning("No OAuth provider configured; nobody will be able to sign in")
    return providers

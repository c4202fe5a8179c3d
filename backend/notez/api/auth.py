from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from notez.api.deps import authenticated_identity, get_settings
from notez.api.rendering import render
from notez.config import Settings
from notez.models.auth import SessionIdentity
from notez.utils.oauth_providers import OAuthError, OAuthProvider
from notez.utils.oauth_state import STATE_COOKIE, compute_state, new_nonce, verify_state
from notez.utils.session_token import clear_session_cookie, set_session_cookie

log = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

STATE_MAX_AGE_SECONDS = 600


def _provider(request: Request, name: str) -> OAuthProvider:
    provider = request.app.state.oauth_providers.get(name)
    if provider is None:
        raise HTTPException(status_code=404, detail="Unknown sign-in provider")
    return provider


def _failed_login(reason: str) -> RedirectResponse:
    log.warning("Sign-in failed: %s", reason)
    response = RedirectResponse("/login", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/login")
def login(request: Request):
    if authenticated_identity(request) is not None:
        return RedirectResponse("/", status_code=302)
    return render(request, "login.html", {"providers": sorted(request.app.state.oauth_providers)})


@router.get("/logout")
def logout(request: Request):
    response = render(request, "logout.html")
    clear_session_cookie(response)
    return response


@router.get("/auth/{provider_name}")
def start_sign_in(provider_name: str, request: Request, settings: Settings = Depends(get_settings)):
    provider = _provider(request, provider_name)
    nonce = new_nonce()
    state = compute_state(settings.secret, nonce, provider.name)

    response = RedirectResponse(
        provider.authorize_redirect(settings.callback_url(provider.name), state),
        status_code=302,
    )
    response.set_cookie(
        key=STATE_COOKIE,
        value=nonce,
        max_age=STATE_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/auth/{provider_name}/callback")
def finish_sign_in(
    provider_name: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    settings: Settings = Depends(get_settings),
):
    provider = _provider(request, provider_name)
    if error:
        return _failed_login(f"{provider.name} returned {error}")
    if not code:
        return _failed_login(f"{provider.name} callback without code")
    if not verify_state(settings.secret, state, request.cookies.get(STATE_COOKIE), provider.name):
        return _failed_login(f"{provider.name} callback with bad state")

    redirect_uri = settings.callback_url(provider.name)
    try:
        with httpx.Client(
            timeout=settings.http_timeout_seconds,
            transport=request.app.state.http_transport,
        ) as client:
            token = provider.exchange_code(client, code, redirect_uri)
            profile = provider.fetch_profile(client, token)
    except OAuthError as exc:
        return _failed_login(str(exc))

    identity = SessionIdentity(user_id=profile.id, name=profile.name, provider=profile.provider)
    log.info("User %s signed in with %s", identity.user_id, identity.provider)

    response = RedirectResponse("/", status_code=302)
    set_session_cookie(response, identity, settings)
    response.delete_cookie(STATE_COOKIE)
    return response

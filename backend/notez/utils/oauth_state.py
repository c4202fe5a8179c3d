from __future__ import annotations

import hashlib
import hmac
import secrets

STATE_COOKIE = "notez_oauth_state"


def _mac(secret: str, nonce: str, provider: str) -> str:
    msg = f"{nonce}:{provider}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def new_nonce() -> str:
    return secrets.token_urlsafe(24)


def compute_state(secret: str, nonce: str, provider: str) -> str:
    return f"{nonce}.{_mac(secret, nonce, provider)}"


def verify_state(secret: str, state: str | None, cookie_nonce: str | None, provider: str) -> bool:
    """The state must carry the nonce from our cookie and a MAC bound to the provider."""
    if not state or not cookie_nonce or "." not in state:
        return False
    nonce, mac = state.rsplit(".", 1)
    # constant-time compare
    if not hmac.compare_digest(nonce, cookie_nonce):
        return False
    return hmac.compare_digest(_mac(secret, nonce, provider), mac)

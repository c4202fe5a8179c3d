from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from fastapi.responses import Response
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from notez.config import Settings
from notez.models.auth import SessionIdentity

log = logging.getLogger(__name__)

SESSION_COOKIE = "notez_session"


def create_session_token(identity: SessionIdentity, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.session_minutes)
    payload = {
        "sub": identity.user_id,
        "name": identity.name,
        "provider": identity.provider,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> Optional[SessionIdentity]:
    """
    Turn a session cookie back into an identity.

    - valid token -> authenticated identity
    - genuine but expired token -> identity with authenticated=False
    - anything else -> None
    """
    authenticated = True
    try:
        payload = jwt.decode(token, settings.secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        authenticated = False
        try:
            payload = jwt.decode(
                token,
                settings.secret,
                algorithms=[settings.jwt_algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return None
    except JWTError:
        return None

    try:
        return SessionIdentity(
            user_id=str(payload.get("sub") or ""),
            name=str(payload.get("name") or ""),
            provider=str(payload.get("provider") or ""),
            authenticated=authenticated,
        )
    except ValidationError:
        log.warning("Discarding session cookie with malformed claims")
        return None


def get_session_identity(request: Request) -> Optional[SessionIdentity]:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return decode_session_token(token, request.app.state.settings)


def set_session_cookie(response: Response, identity: SessionIdentity, settings: Settings) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_session_token(identity, settings),
        max_age=settings.session_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.server_url.startswith("https://"),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)

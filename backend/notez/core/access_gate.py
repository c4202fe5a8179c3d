"""Allow-list gate in front of every protected route.

The gate only decides; issuing the redirect is up to the caller.
"""
from __future__ import annotations

from enum import Enum
from typing import AbstractSet, Iterable, Optional

from notez.models.auth import SessionIdentity


class GateDecision(Enum):
    PROCEED = None
    REDIRECT_LOGIN = "/login"
    REDIRECT_LOGOUT = "/logout"

    @property
    def redirect_to(self) -> Optional[str]:
        return self.value


def check_access(
    allow_list: AbstractSet[str],
    session_user_id: Optional[str],
    is_authenticated: bool,
) -> GateDecision:
    # A known but unlisted user is logged out, authenticated or not.
    if session_user_id is not None and session_user_id not in allow_list:
        return GateDecision.REDIRECT_LOGOUT
    if session_user_id is not None and is_authenticated:
        return GateDecision.PROCEED
    # Missing or unusable identity ends up here as well. Login, not logout:
    # sending an anonymous visitor to /logout would bounce back here forever.
    return GateDecision.REDIRECT_LOGIN


class AccessGate:
    def __init__(self, allow_list: Iterable[str]):
        self.allow_list = frozenset(str(u) for u in allow_list)

    def check(self, identity: Optional[SessionIdentity]) -> GateDecision:
        if identity is None:
            return check_access(self.allow_list, None, False)
        return check_access(self.allow_list, identity.user_id, identity.authenticated)

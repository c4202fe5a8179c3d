from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse

from notez.config import Settings
from notez.core.access_gate import AccessGate, GateDecision
from notez.models.auth import SessionIdentity
from notez.storage.media_store import MediaStore
from notez.storage.notes_store import Note, NotesStore
from notez.utils.session_token import get_session_identity

log = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> NotesStore:
    return request.app.state.notes_store


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


def get_gate(request: Request) -> AccessGate:
    return request.app.state.gate


def gate_request(request: Request) -> tuple[Optional[SessionIdentity], Optional[RedirectResponse]]:
    """Run the access gate. Returns (identity, None) or (None, redirect).

    Callers return the redirect as is when one comes back.
    """
    identity = get_session_identity(request)
    decision = get_gate(request).check(identity)
    if decision is GateDecision.PROCEED:
        return identity, None
    log.info(
        "Gate sent %s %s to %s (user=%s)",
        request.method,
        request.url.path,
        decision.redirect_to,
        identity.user_id if identity else None,
    )
    return None, RedirectResponse(decision.redirect_to, status_code=302)


def authenticated_identity(request: Request) -> Optional[SessionIdentity]:
    """Identity of a signed-in, unexpired session; no allow-list check."""
    identity = get_session_identity(request)
    if identity is None or not identity.authenticated:
        return None
    return identity


def may_access(request: Request, note: Note, identity: SessionIdentity) -> bool:
    # Ownership is only enforced when switched on in the settings.
    if not get_settings(request).enforce_ownership:
        return True
    return note.owner_id == identity.user_id

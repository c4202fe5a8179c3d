from __future__ import annotations

import logging
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from notez.api import auth, media, notes
from notez.config import Settings, load_settings
from notez.core.access_gate import AccessGate
from notez.storage.errors import StoreUnavailable
from notez.storage.media_store import MediaStore
from notez.storage.notes_store import JsonNotesStore, NotesStore
from notez.utils.log_config import configure_logging, install_access_log
from notez.utils.oauth_providers import configured_providers

log = logging.getLogger(__name__)


def _open_notes_store(settings: Settings) -> NotesStore:
    if settings.mongo_url:
        from notez.storage.mongo_store import open_mongo_store

        return open_mongo_store(settings.mongo_url, settings.mongo_db, settings.store_timeout_ms)
    log.info("Using JSON note store in %s", settings.data_dir)
    return JsonNotesStore(settings.data_dir)


def _store_unavailable(request: Request, exc: StoreUnavailable) -> PlainTextResponse:
    log.error("Store unavailable during %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse("The note store is unavailable, try again later.", status_code=503)


def _unhandled(request: Request, exc: Exception) -> PlainTextResponse:
    log.exception("Unhandled error during %s %s", request.method, request.url.path, exc_info=exc)
    return PlainTextResponse("Internal server error", status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    notes_store: Optional[NotesStore] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)

    app = FastAPI(title="Notez")
    app.state.settings = settings
    app.state.gate = AccessGate(settings.allowed_users)
    app.state.notes_store = notes_store or _open_notes_store(settings)
    app.state.media_store = MediaStore(settings.media_dir_path())
    app.state.oauth_providers = configured_providers(settings)
    # None means httpx's default network transport
    app.state.http_transport = http_transport

    install_access_log(app)
    app.add_exception_handler(StoreUnavailable, _store_unavailable)
    app.add_exception_handler(Exception, _unhandled)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(media.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    log.info("Notez ready with %d allow-listed user(s)", len(settings.allowed_users))
    return app


def main() -> None:
    uvicorn.run("notez.main:create_app", factory=True, host="0.0.0.0", port=4000)

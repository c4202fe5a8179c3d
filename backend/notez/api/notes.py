import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from notez.api.deps import authenticated_identity, gate_request, get_store, may_access
from notez.api.rendering import render
from notez.core.note_identity import denormalize_content, derive_note_id, normalize_content
from notez.models.notes import NoteEdit, NoteSubmission, PublishForm
from notez.storage.notes_store import Note, NotesStore

log = logging.getLogger(__name__)

router = APIRouter(tags=["notes"])


def _note_url(note_id: str) -> str:
    return f"/notes/{quote(note_id, safe='')}"


def _invalid(exc: ValidationError) -> HTTPException:
    fields = sorted({str(e["loc"][0]) for e in exc.errors() if e.get("loc")})
    return HTTPException(status_code=422, detail=f"Invalid note data: {', '.join(fields)}")


def _login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=303)


@router.get("/")
def list_my_notes(request: Request, store: NotesStore = Depends(get_store)):
    identity, redirect = gate_request(request)
    if redirect is not None:
        return redirect
    notes = store.find_by_owner(identity.user_id)
    return render(request, "notes.html", {"user": identity, "notes": notes})


@router.get("/notes/new")
def new_note_form(request: Request):
    identity, redirect = gate_request(request)
    if redirect is not None:
        return redirect
    return render(request, "new.html", {"user": identity})


@router.post("/notes/new")
def create_note(
    request: Request,
    note_title: Optional[str] = Form(default=None, alias="noteTitle"),
    note_content: str = Form(default="", alias="noteContent"),
    form_user_id: Optional[str] = Form(default=None, alias="userId"),
    form_userid: Optional[str] = Form(default=None, alias="userid"),
    username: Optional[str] = Form(default=None),
    store: NotesStore = Depends(get_store),
):
    identity = authenticated_identity(request)
    if identity is None:
        return _login_redirect()

    try:
        payload = NoteSubmission(
            title=note_title,
            content=note_content,
            user_id=form_user_id or form_userid,
            username=username,
        )
    except ValidationError as exc:
        raise _invalid(exc)

    if payload.user_id is not None and payload.user_id != identity.user_id:
        raise HTTPException(status_code=422, detail="userId does not match the signed-in user")

    note = Note(
        id=derive_note_id(payload.title, identity.user_id),
        title=payload.title,
        content=normalize_content(payload.content),
        owner_id=identity.user_id,
        owner_name=identity.name or payload.username or "",
        public=False,
    )
    store.insert(note)
    log.info("Note %s created by %s", note.id, identity.user_id)
    return RedirectResponse(_note_url(note.id), status_code=303)


@router.get("/notes/{note_id}")
def view_note(note_id: str, request: Request, store: NotesStore = Depends(get_store)):
    note = store.find_by_id(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Unknown id")

    identity = authenticated_identity(request)
    if not note.public:
        if identity is None:
            return RedirectResponse("/login", status_code=302)
        if not may_access(request, note, identity):
            raise HTTPException(status_code=404, detail="Unknown id")

    return render(request, "note_viewer.html", {"note": note, "user": identity})


@router.get("/notes/edit/{note_id}")
def edit_note_form(note_id: str, request: Request, store: NotesStore = Depends(get_store)):
    identity, redirect = gate_request(request)
    if redirect is not None:
        return redirect

    note = store.find_by_id(note_id)
    if note is None or not may_access(request, note, identity):
        raise HTTPException(status_code=404, detail="Note not found")

    return render(request, "editor.html", {
        "note": note,
        "raw_content": denormalize_content(note.content),
        "user": identity,
    })


@router.post("/notes/edit/{note_id}")
def edit_note(
    note_id: str,
    request: Request,
    note_title: Optional[str] = Form(default=None, alias="noteTitle"),
    note_content: str = Form(default="", alias="noteContent"),
    store: NotesStore = Depends(get_store),
):
    identity = authenticated_identity(request)
    if identity is None:
        return _login_redirect()

    try:
        payload = NoteEdit(title=note_title, content=note_content)
    except ValidationError as exc:
        raise _invalid(exc)

    existing = store.find_by_id(note_id)
    if existing is None or not may_access(request, existing, identity):
        raise HTTPException(status_code=404, detail="Note not found")

    # last writer wins; editing always makes the note private again
    updated = store.update_by_id(note_id, title=payload.title, content=normalize_content(payload.content))
    if updated is None:
        raise HTTPException(status_code=404, detail="Note not found")

    log.info("Note %s edited by %s (version %d)", note_id, identity.user_id, updated.version)
    return RedirectResponse(_note_url(note_id), status_code=303)


@router.post("/notes/publish/{note_id}")
def publish_note(
    note_id: str,
    request: Request,
    public: Optional[str] = Form(default=None),
    store: NotesStore = Depends(get_store),
):
    identity, redirect = gate_request(request)
    if redirect is not None:
        return redirect

    try:
        payload = PublishForm(public=public if public is not None else False)
    except ValidationError as exc:
        raise _invalid(exc)

    existing = store.find_by_id(note_id)
    if existing is None or not may_access(request, existing, identity):
        raise HTTPException(status_code=404, detail="Note not found")

    updated = store.set_public(note_id, payload.public)
    if updated is None:
        raise HTTPException(status_code=404, detail="Note not found")

    log.info("Note %s made %s by %s", note_id, "public" if updated.public else "private", identity.user_id)
    return RedirectResponse(_note_url(note_id), status_code=303)


@router.get("/notes/delete/{note_id}")
def delete_note(note_id: str, request: Request, store: NotesStore = Depends(get_store)):
    identity, redirect = gate_request(request)
    if redirect is not None:
        return redirect

    existing = store.find_by_id(note_id)
    if existing is not None and not may_access(request, existing, identity):
        raise HTTPException(status_code=404, detail="Note not found")

    # idempotent: a second delete renders the same page
    store.delete_by_id(note_id)
    log.info("Note %s deleted by %s", note_id, identity.user_id)
    return render(request, "deleted.html", {"note_id": note_id, "user": identity})

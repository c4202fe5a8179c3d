from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from notez.api.deps import get_media_store
from notez.api.rendering import render
from notez.storage.media_store import MediaStore

router = APIRouter(prefix="/media", tags=["media"])

MISSING = "That file does not exist."


@router.get("/{user_id}/{media_type}/{filename}")
def view_media(
    user_id: str,
    media_type: str,
    filename: str,
    request: Request,
    media: MediaStore = Depends(get_media_store),
):
    if media.resolve(user_id, media_type, filename) is None:
        raise HTTPException(status_code=404, detail=MISSING)
    src = request.url_for("raw_media", user_id=user_id, media_type=media_type, filename=filename)
    return render(request, "media_viewer.html", {"title": filename, "src": str(src)})


@router.get("/{user_id}/{media_type}/{filename}/raw", name="raw_media")
def raw_media(
    user_id: str,
    media_type: str,
    filename: str,
    media: MediaStore = Depends(get_media_store),
):
    path = media.resolve(user_id, media_type, filename)
    if path is None:
        raise HTTPException(status_code=404, detail=MISSING)
    return FileResponse(path)

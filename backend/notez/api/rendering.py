from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates
from markupsafe import Markup

from notez.core.note_identity import LINE_BREAK

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def linebreaks(text: Optional[str]) -> Markup:
    """Escape stored note content but keep its line-break markers."""
    return Markup(LINE_BREAK).join((text or "").split(LINE_BREAK))


templates.env.filters["linebreaks"] = linebreaks


def render(request: Request, name: str, context: Optional[dict[str, Any]] = None, status_code: int = 200):
    return templates.TemplateResponse(request, name, context or {}, status_code=status_code)

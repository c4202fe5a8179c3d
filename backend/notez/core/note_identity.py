"""Public identifiers and content normalisation for notes."""
from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]")
_NEWLINE = re.compile(r"\r?\n")

LINE_BREAK = "<br />"


def slugify_title(title: str) -> str:
    # ASCII only; "é" and friends are dropped, not transliterated
    return _NON_ALNUM.sub("", title)


def derive_note_id(title: str, owner_id: str) -> str:
    """Return the public id of a note: ``<slug of title>-<owner id>``.

    Two notes by the same owner whose titles slugify identically share an id.
    """
    return f"{slugify_title(title)}-{owner_id}"


def normalize_content(text: str) -> str:
    return _NEWLINE.sub(LINE_BREAK, text)


def denormalize_content(text: str) -> str:
    return text.replace(LINE_BREAK, "\n")

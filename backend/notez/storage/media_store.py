from pathlib import Path
from typing import Optional


def _is_safe_segment(segment: str) -> bool:
    if not segment or segment in (".", ".."):
        return False
    return not any(ch in segment for ch in ("/", "\\", "\x00"))


class MediaStore:
    """Read-only view over ``<base_dir>/public/<user>/<media type>/<file>``."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def resolve(self, user_id: str, media_type: str, filename: str) -> Optional[Path]:
        segments = (user_id, media_type, filename)
        if not all(_is_safe_segment(s) for s in segments):
            return None
        path = self.base_dir.joinpath("public", *segments)
        if not path.is_file():
            return None
        return path

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


def _project_root() -> Path:
    # backend/notez/config.py -> backend -> repository root
    return Path(__file__).resolve().parents[2]


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value.strip()


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _load_allowed_users(raw_list: str, file_path: str) -> frozenset[str]:
    users = {u.strip() for u in raw_list.split(",") if u.strip()}
    if file_path:
        # same shape as the old allowedUser.json: a JSON array of ids
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{file_path}: expected a JSON array of user ids")
        users.update(str(u) for u in data)
    return frozenset(users)


@dataclass(frozen=True)
class Settings:
    secret: str
    allowed_users: frozenset[str] = frozenset()
    session_minutes: int = 1440
    jwt_algorithm: str = "HS256"
    server_url: str = "http://localhost:4000"
    data_dir: Path = _project_root() / "data"
    media_dir: Path | None = None
    mongo_url: str = ""
    mongo_db: str = "notez"
    store_timeout_ms: int = 5000
    http_timeout_seconds: float = 10.0
    enforce_ownership: bool = False
    github_client_id: str = ""
    github_client_secret: str = ""
    discord_client_id: str = ""
    discord_client_secret: str = ""
    log_level: str = "INFO"
    log_file: str = ""

    def media_dir_path(self) -> Path:
        return self.media_dir if self.media_dir is not None else self.data_dir / "media"

    def callback_url(self, provider: str) -> str:
        return f"{self.server_url.rstrip('/')}/auth/{provider}/callback"


def load_settings() -> Settings:
    secret = _getenv_str("NOTEZ_SECRET", "")
    if not secret:
        raise RuntimeError("NOTEZ_SECRET is not set")

    data_dir = Path(_getenv_str("NOTEZ_DATA_DIR", str(_project_root() / "data")))
    media_dir = _getenv_str("NOTEZ_MEDIA_DIR", "")

    return Settings(
        secret=secret,
        allowed_users=_load_allowed_users(
            _getenv_str("NOTEZ_ALLOWED_USERS", ""),
            _getenv_str("NOTEZ_ALLOWED_USERS_FILE", ""),
        ),
        session_minutes=_getenv_int("NOTEZ_SESSION_MINUTES", 1440),
        jwt_algorithm=_getenv_str("NOTEZ_JWT_ALGORITHM", "HS256"),
        server_url=_getenv_str("NOTEZ_SERVER_URL", "http://localhost:4000"),
        data_dir=data_dir,
        media_dir=Path(media_dir) if media_dir else None,
        mongo_url=_getenv_str("NOTEZ_MONGO_URL", ""),
        mongo_db=_getenv_str("NOTEZ_MONGO_DB", "notez"),
        store_timeout_ms=_getenv_int("NOTEZ_STORE_TIMEOUT_MS", 5000),
        http_timeout_seconds=_getenv_float("NOTEZ_HTTP_TIMEOUT_SECONDS", 10.0),
        enforce_ownership=_getenv_bool("NOTEZ_ENFORCE_OWNERSHIP", False),
        github_client_id=_getenv_str("NOTEZ_GITHUB_CLIENT_ID", ""),
        github_client_secret=_getenv_str("NOTEZ_GITHUB_CLIENT_SECRET", ""),
        discord_client_id=_getenv_str("NOTEZ_DISCORD_CLIENT_ID", ""),
        discord_client_secret=_getenv_str("NOTEZ_DISCORD_CLIENT_SECRET", ""),
        log_level=_getenv_str("NOTEZ_LOG_LEVEL", "INFO").upper(),
        log_file=_getenv_str("NOTEZ_LOG_FILE", ""),
    )

import logging
import time
from pathlib import Path

from fastapi import FastAPI, Request

from notez.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

access_log = logging.getLogger("notez.access")


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger("notez")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(settings.log_level)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)


def install_access_log(app: FastAPI) -> None:
    @app.middleware("http")
    async def _log_request(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # the 500 page itself is rendered further out, by the error handler
            elapsed_ms = (time.perf_counter() - started) * 1000
            access_log.info("%s %s 500 %.3f ms - -", request.method, request.url.path, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        # METHOD path status elapsed - content-length
        access_log.info(
            "%s %s %s %.3f ms - %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            response.headers.get("content-length", "-"),
        )
        return response

"""Map pipeline errors to distinct, stable HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from localdeck.core.errors import (
    ContentNotFound,
    InvalidContentRef,
    LocalDeckError,
    PlaybackError,
    SourceUnavailable,
    StorageError,
    UnknownCard,
    UnsupportedSource,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    UnknownCard: 404,
    UnsupportedSource: 422,
    SourceUnavailable: 502,
    StorageError: 500,
    ContentNotFound: 410,
    InvalidContentRef: 400,
    PlaybackError: 503,
}


def status_for(error: LocalDeckError) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def error_body(code: str, detail: str) -> dict:
    return {"ok": False, "error": code, "detail": detail}


async def _handle_localdeck_error(request: Request, exc: LocalDeckError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s %s -> %d %s: %s", request.method, request.url.path, status, exc.code, exc)
    return JSONResponse(status_code=status, content=error_body(exc.code, str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LocalDeckError, _handle_localdeck_error)

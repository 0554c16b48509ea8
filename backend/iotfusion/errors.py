"""Error types and the JSON error envelope shared by all routes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The external data source failed or returned something unusable."""

    def __init__(self, message: str, status_code: int = 503):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_envelope(request: Request, status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "timestamp": _now_iso(),
            "path": request.url.path,
            "method": request.method,
        },
    )


async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error("Upstream error on %s %s: %s", request.method, request.url.path, exc.message)
    return error_envelope(request, exc.status_code, exc.message)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Endpoint not found - {request.url.path}"
    else:
        message = str(exc.detail)
    logger.warning("HTTP %s on %s %s: %s", exc.status_code, request.method, request.url.path, message)
    return error_envelope(request, exc.status_code, message)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = f"Validation Error: {', '.join(parts)}"
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return error_envelope(request, 400, message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

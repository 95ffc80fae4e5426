"""
Confluence Scanner — Global Exception Handlers

Every error response has the same JSON shape:

    {"error": true, "status_code": ..., "detail": ..., "request_id": ...}

Provider failures surface as 502 with the provider's message, so a bad
symbol or an exhausted API quota is visible to the caller.
"""

from __future__ import annotations

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from confluence_scanner.data.twelvedata_client import DataSourceError

log = structlog.get_logger(__name__)


def error_response(request: Request, status_code: int, detail, **extra) -> JSONResponse:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
        **extra,
    }
    return JSONResponse(status_code=status_code, content=body)


def _field_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException):
        return error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        log.warning("request.invalid", path=request.url.path, errors=errors)
        return error_response(request, 422, "Validation error", errors=errors)

    @app.exception_handler(DataSourceError)
    async def on_data_source_error(request: Request, exc: DataSourceError):
        log.error("provider.failed", symbol=exc.symbol, interval=exc.interval, error=str(exc))
        return error_response(request, 502, str(exc))

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception):
        log.error(
            "request.unhandled",
            path=request.url.path,
            error=repr(exc),
            traceback=traceback.format_exc(),
        )
        return error_response(request, 500, "Internal server error")

"""
Confluence Scanner — Request Logger Middleware

Tags every request with an id (the caller's X-Request-ID, or a fresh one),
binds it into structlog's context so engine log lines carry it, exposes it
on request.state for the error handlers and echoes it on the response.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled endpoints: tagged, not logged
_QUIET_PATHS = frozenset({"/health", "/metrics", "/favicon.ico"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        if request.url.path in _QUIET_PATHS:
            response = await call_next(request)
        else:
            response = await self._logged(request, call_next, request_id)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    async def _logged(self, request: Request, call_next, request_id: str) -> Response:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        log.info("request.start", query=request.url.query or None)

        try:
            response = await call_next(request)
        except Exception:
            log.error("request.error", latency_ms=_elapsed_ms(started))
            raise

        log.info("request.complete", status=response.status_code, latency_ms=_elapsed_ms(started))
        return response

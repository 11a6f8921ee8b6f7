from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from structlog import contextvars as structlog_contextvars

from .logging import logger

__all__ = [
    "AccessLogMiddleware",
    "RequestIDMiddleware",
]

_MAX_ERROR_MESSAGE = 200


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request ID to each incoming request and expose it in headers.

    - Sets `request.state.request_id`
    - Adds `X-Request-ID` to the response headers
    - Binds `request_id` to structlog contextvars for the duration of the request
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog_contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit one structured `request_complete` event per request.

    失敗時は logger.error を使い、例外型と短いメッセージを残す。
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        start = time.perf_counter()
        path = request.url.path
        method = request.method
        status_code: int | None = None
        error_type: str | None = None
        error_message: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as exc:
            status_code = 500
            error_type = exc.__class__.__name__
            raw_message = str(exc)
            error_message = (
                raw_message
                if len(raw_message) <= _MAX_ERROR_MESSAGE
                else f"{raw_message[:_MAX_ERROR_MESSAGE - 3]}..."
            )
            raise
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            is_error = error_type is not None
            log_method = logger.error if is_error else logger.info
            log_method(
                "request_complete",
                path=path,
                method=method,
                status_code=status_code,
                latency_ms=round(latency_ms, 3),
                is_error=is_error,
                error_type=error_type,
                error_message=error_message,
                request_id=getattr(request.state, "request_id", None)
                or structlog_contextvars.get_contextvars().get("request_id"),
                client_ip=request.client.host if request.client else "unknown",
            )

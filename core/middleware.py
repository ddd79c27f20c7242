"""
Application Middleware for the StreamList API.

This module defines the middleware and exception handlers that wrap every
request: correlation IDs, CORS headers, request timing, and the translation
of application exceptions into JSON error responses.

Key Middleware Components:
- `CORSHeadersMiddleware`: Adds the CORS headers to every response and answers
  `OPTIONS` preflight requests with an empty `200`. The request origin is
  echoed back when it is allow-listed, otherwise `*` is sent.
- `CorrelationMiddleware`: Assigns a correlation ID to every request so all
  log lines for it can be grouped.
- `ErrorHandlingMiddleware`: Converts any exception the handlers below do not
  cover into a JSON `500` with the `INTERNAL_ERROR` code.
- `PerformanceMiddleware`: Logs each request with its processing time and sets
  the `X-Process-Time` header.
- `register_exception_handlers`: Installs FastAPI exception handlers mapping
  `StreamListException`, HTTP errors and request validation errors to the JSON
  bodies the frontend expects.

Architectural Design:
- Middleware is built on Starlette's `BaseHTTPMiddleware`.
- Exception handlers run inside the middleware stack, so error responses
  still receive the CORS and correlation headers. `ErrorHandlingMiddleware`
  is installed innermost for the same reason.
"""

import time
import uuid
from typing import Callable, Iterable
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import set_correlation_id, get_logger
from .exceptions import (
    InternalError,
    StreamListException,
    to_http_status,
    to_response_body,
)

logger = get_logger("core.middleware")

ALLOWED_METHODS = "GET, OPTIONS"
ALLOWED_HEADERS = "Content-Type"


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that sets CORS headers and answers preflight requests"""

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str] = ()):
        super().__init__(app)
        self.allowed_origins = frozenset(allowed_origins)

    def allow_origin_for(self, origin: str) -> str:
        if origin and origin in self.allowed_origins:
            return origin
        return "*"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        response.headers["Access-Control-Allow-Origin"] = self.allow_origin_for(
            request.headers.get("origin", "")
        )
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        response.headers["Access-Control-Allow-Credentials"] = "true"
        return response


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware turning unexpected exceptions into the JSON 500 body"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            exc = InternalError()
            return JSONResponse(status_code=to_http_status(exc), content=to_response_body(exc))


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    SLOW_REQUEST_SECONDS = 2.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        log = logger.warning if process_time > self.SLOW_REQUEST_SECONDS else logger.info
        log(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
            },
        )
        return response


async def stream_list_exception_handler(
    request: Request, exc: StreamListException
) -> JSONResponse:
    status_code = to_http_status(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"API Error: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=status_code, content=to_response_body(exc))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 405:
        message = "Method not allowed"
    else:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ())[1:])
        message = f"{field} {errors[0].get('msg', 'is invalid')}".strip()
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StreamListException, stream_list_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

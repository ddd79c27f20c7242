"""
Custom Exception Classes for the StreamList API.

This module defines the exception hierarchy used by the token manager, the
proxy fetcher and the aggregation pipeline. Every failure is surfaced to the
immediate caller; nothing in the core retries or degrades to partial data.

Key Components:
- `StreamListException`: The base exception class. It carries a message, an
  error code and an optional details dictionary.
- `AuthConfigError`: Twitch credentials are missing from the environment.
- `UpstreamAuthError`: The OAuth client-credentials exchange was rejected.
- `UpstreamFetchError`: The Helix streams query was rejected.
- `NetworkError`: No response was received (transport failure or timeout).
- `ValidationError`: The incoming request is missing a required parameter.
- `InternalError`: Any other failure, reported without its internal details.
- `to_http_status` / `to_response_body`: Map an exception to the status code
  and JSON body returned by the serving boundary.

Architectural Design:
- Upstream errors keep the upstream status code and response body in
  `details` so they can be logged and inspected by callers.
- The mapping to HTTP lives here so the endpoints and the exception handlers
  agree on a single representation.
"""

from typing import Optional, Dict, Any


class StreamListException(Exception):
    """Base exception class for StreamList API"""

    summary = "Failed to fetch streams"

    def __init__(
        self,
        message: str,
        error_code: str = "STREAMLIST_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthConfigError(StreamListException):
    """Raised when Twitch credentials are not configured"""

    def __init__(self, has_client_id: bool, has_client_secret: bool):
        super().__init__(
            "Twitch API credentials not configured",
            "AUTH_CONFIG_ERROR",
            {"has_client_id": has_client_id, "has_client_secret": has_client_secret},
        )


class UpstreamAuthError(StreamListException):
    """Raised when the OAuth token exchange responds with a non-success status"""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(
            f"Failed to get OAuth token: {status} {body}",
            "UPSTREAM_AUTH_ERROR",
            {"status": status, "body": body},
        )


class UpstreamFetchError(StreamListException):
    """Raised when the streams query responds with a non-success status"""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(
            f"Failed to fetch streams: {status}",
            "UPSTREAM_FETCH_ERROR",
            {"status": status, "body": body},
        )


class NetworkError(StreamListException):
    """Raised when no response is received from an upstream service"""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Network error contacting {url}: {reason}",
            "NETWORK_ERROR",
            {"url": url, "reason": reason},
        )


class ValidationError(StreamListException):
    """Raised when input validation fails"""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"{field} {reason}",
            "VALIDATION_ERROR",
            {"field": field, "reason": reason},
        )


class InternalError(StreamListException):
    """Stands in for an unexpected exception at the HTTP boundary"""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message, "INTERNAL_ERROR")


STATUS_CODE_MAP = {
    "VALIDATION_ERROR": 400,
    "AUTH_CONFIG_ERROR": 500,
    "UPSTREAM_AUTH_ERROR": 500,
    "UPSTREAM_FETCH_ERROR": 500,
    "NETWORK_ERROR": 500,
    "INTERNAL_ERROR": 500,
}


def to_http_status(exc: StreamListException) -> int:
    """Return the HTTP status code for a StreamListException"""
    return STATUS_CODE_MAP.get(exc.error_code, 500)


def to_response_body(exc: StreamListException) -> Dict[str, Any]:
    """Build the JSON error body for a StreamListException"""
    if to_http_status(exc) == 400:
        return {"error": exc.message}

    return {
        "error": exc.summary,
        "message": exc.message,
        "code": exc.error_code,
    }

"""
Health Router.

Public, unauthenticated endpoints for uptime checks. They never contact
Twitch, so they stay cheap and succeed even when the credentials are missing.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Request

from core.logging_config import get_logger

logger = get_logger(__name__)

health_router = APIRouter(tags=["Health"])

VERSION = "1.0.0"


@health_router.get("/healthcheck")
async def health_check(request: Request) -> Dict[str, Any]:
    """
    Basic health check endpoint

    Returns:
        Dict with status, timestamp, version and whether credentials are set
    """
    logger.debug("Health check requested")

    settings = request.app.state.settings
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "service": "StreamList API",
        "credentials_configured": bool(settings.client_id and settings.client_secret),
    }

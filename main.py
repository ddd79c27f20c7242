"""
StreamList API - Main Application Entry Point.

This module initializes and configures the FastAPI application that backs the
StreamList frontend. It lists the live channels of a Twitch game category
while keeping the Twitch API credentials on the server.

Key Responsibilities:
- Configure logging and read settings from the environment.
- Create the shared aiohttp session, the token manager, the Helix stream
  provider and the aggregation and browse services during startup, and close
  them again on shutdown.
- Install the CORS, correlation, performance and error-handling middleware plus the JSON
  exception handlers.
- Mount the health and stream routers.
"""

from contextlib import asynccontextmanager
from typing import Optional
import aiohttp
from fastapi import FastAPI
from api.endpoints import router
from api.health_router import health_router
from core.config import Settings
from core.logging_config import setup_logging, get_logger
from core.middleware import (
    CORSHeadersMiddleware,
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)
from providers.stream_provider import HelixStreamProvider
from providers.token_provider import TokenManager
from services.aggregation_service import AggregationService
from services.browse_service import BrowseService


def create_app(
    settings: Optional[Settings] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to `Settings.from_env()`
        session: HTTP session used for Twitch calls. When omitted one is
            created at startup and closed at shutdown.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger = get_logger("api.startup")

        http = session or aiohttp.ClientSession()
        token_manager = TokenManager(
            http,
            settings.client_id,
            settings.client_secret,
            timeout=settings.upstream_timeout,
        )
        stream_provider = HelixStreamProvider(
            http, token_manager, timeout=settings.upstream_timeout
        )
        aggregation_service = AggregationService(stream_provider)

        app.state.token_manager = token_manager
        app.state.stream_provider = stream_provider
        app.state.aggregation_service = aggregation_service
        app.state.browse_service = BrowseService(aggregation_service)

        if not (settings.client_id and settings.client_secret):
            logger.warning("Twitch credentials are not configured")
        logger.info("Service startup completed")
        yield

        logger.info("Shutting down StreamList API")
        await app.state.browse_service.close()
        if session is None:
            await http.close()
        logger.info("Cleanup completed")

    app = FastAPI(
        title="StreamList API",
        description="Live Twitch streams per game category",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    register_exception_handlers(app)

    # Last added runs first: CORS wraps everything so preflights short-circuit
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(PerformanceMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(CORSHeadersMiddleware, allowed_origins=settings.allowed_origins)

    app.include_router(health_router)
    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )

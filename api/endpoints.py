"""
API Endpoints for StreamList.

This module defines the REST endpoints that sit between the browser frontend
and the Twitch Helix API.

Endpoints Provided:
- `GET /api/streams`: Proxy for one page of live streams. The Twitch
  credentials stay on the server; the upstream body is returned verbatim.
- `GET /api/streams/all`: Runs the full aggregation for a category and returns
  the deduplicated, filtered and sorted list.
- `POST /api/browse/{game_id}`: Selects a category for the browse session and
  starts loading it in the background, superseding any load in flight.
- `GET /api/browse`: Current browse state with the filtered, sorted list.

Architectural Design:
- Dependency Injection: the provider and services are created once in the
  application lifespan and injected via `api.dependencies`.
- Error Handling: endpoints raise `StreamListException` subclasses; the
  handlers registered in `core.middleware` turn them into JSON responses.
"""

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query
from core.exceptions import ValidationError
from core.logging_config import log_function_call
from providers.stream_provider import HelixStreamProvider
from services.aggregation_service import AggregationService, present
from services.browse_service import BrowseService
from .dependencies import (
    get_aggregation_service,
    get_browse_service,
    get_stream_provider,
)

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api", tags=["Streams"])

ORDER_PATTERN = "^(asc|desc)$"


def require_game_id(game_id: Optional[str]) -> str:
    if not game_id or not game_id.strip():
        raise ValidationError("game_id", "is required")
    return game_id.strip()


@router.get("/streams")
@log_function_call(logger)
async def get_streams_page(
    game_id: Optional[str] = None,
    cursor: Optional[str] = None,
    provider: HelixStreamProvider = Depends(get_stream_provider),
) -> Dict[str, Any]:
    """Return one page of live streams for a game, mirroring the upstream body"""
    game_id = require_game_id(game_id)

    logger.info(f"Fetching streams for game_id: {game_id}")
    data = await provider.fetch_raw_page(game_id, cursor or None)

    logger.info(f"Successfully fetched streams: {len(data.get('data', []))}")
    return data


@router.get("/streams/all")
@log_function_call(logger)
async def get_all_streams(
    game_id: Optional[str] = None,
    q: str = "",
    order: str = Query("desc", pattern=ORDER_PATTERN),
    aggregator: AggregationService = Depends(get_aggregation_service),
) -> Dict[str, Any]:
    """Aggregate every page for a game and return the display-ready list"""
    game_id = require_game_id(game_id)

    records = await aggregator.load_all(game_id)
    streams = present(records, q, order)

    return {
        "game_id": game_id,
        "total": len(records),
        "shown": len(streams),
        "streams": [record.model_dump() for record in streams],
    }


@router.post("/browse/{game_id}", status_code=202)
async def select_category(
    game_id: str,
    browse: BrowseService = Depends(get_browse_service),
) -> Dict[str, Any]:
    """Start loading a category for the browse session"""
    game_id = require_game_id(game_id)
    generation = browse.select_category(game_id)
    logger.info(f"Browse session switched to game_id={game_id}")
    return {"game_id": game_id, "generation": generation, "status": browse.state.status.value}


@router.get("/browse")
async def get_browse_state(
    q: str = "",
    order: str = Query("desc", pattern=ORDER_PATTERN),
    browse: BrowseService = Depends(get_browse_service),
) -> Dict[str, Any]:
    """Current browse state, filtered and sorted for display"""
    return browse.snapshot(q, order)

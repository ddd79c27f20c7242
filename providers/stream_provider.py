"""
Stream Page Providers

A page provider returns one page of live streams for a game category. The
Helix provider talks to Twitch directly with an app access token; it backs
both the proxy endpoint and the aggregation pipeline.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
import aiohttp
from pydantic import ValidationError as PydanticValidationError
from core.exceptions import NetworkError, UpstreamFetchError
from core.models import Page
from providers.token_provider import TokenManager

logger = logging.getLogger(__name__)

HELIX_STREAMS_URL = "https://api.twitch.tv/helix/streams"

PAGE_SIZE = 100


class StreamPageProvider(ABC):
    """Abstract base class for page providers"""

    @abstractmethod
    async def fetch_page(self, category_id: str, cursor: Optional[str] = None) -> Page:
        """Fetch one page of live streams for a category"""
        pass


class HelixStreamProvider(StreamPageProvider):
    """Fetches pages from the Twitch Helix streams endpoint"""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token_manager: TokenManager,
        timeout: float = 10.0,
    ):
        self._session = session
        self._token_manager = token_manager
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @staticmethod
    def build_params(category_id: str, cursor: Optional[str] = None) -> Dict[str, str]:
        params = {"game_id": category_id, "first": str(PAGE_SIZE)}
        if cursor:
            params["after"] = cursor
        return params

    async def fetch_raw_page(
        self, category_id: str, cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        """Return the upstream JSON for one page without reshaping it"""
        _, payload = await self._get_page(category_id, cursor)
        return payload

    async def fetch_page(self, category_id: str, cursor: Optional[str] = None) -> Page:
        status, payload = await self._get_page(category_id, cursor)
        try:
            page = Page.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(
                f"Malformed streams page for game_id={category_id}",
                extra={"error_count": e.error_count()},
            )
            raise UpstreamFetchError(status, json.dumps(payload, default=str)) from e

        logger.debug(
            f"Fetched {len(page.data)} streams for game_id={category_id}",
            extra={"final_page": page.cursor is None},
        )
        return page

    async def _get_page(
        self, category_id: str, cursor: Optional[str]
    ) -> Tuple[int, Any]:
        token = await self._token_manager.get_token()
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Client-Id": self._token_manager.client_id,
        }
        params = self.build_params(category_id, cursor)

        logger.debug(
            f"Fetching streams for game_id={category_id}",
            extra={"has_cursor": bool(cursor)},
        )

        try:
            async with self._session.get(
                HELIX_STREAMS_URL,
                params=params,
                headers=headers,
                timeout=self._timeout,
            ) as response:
                if response.status < 200 or response.status >= 300:
                    body = await response.text()
                    logger.error(f"Twitch API error: {response.status} {body}")
                    raise UpstreamFetchError(response.status, body)

                try:
                    return response.status, await response.json()
                except ValueError as e:
                    raise UpstreamFetchError(response.status, str(e)) from e
        except asyncio.TimeoutError:
            raise NetworkError(HELIX_STREAMS_URL, "request timed out")
        except aiohttp.ClientError as e:
            raise NetworkError(HELIX_STREAMS_URL, str(e)) from e

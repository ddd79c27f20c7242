"""
Twitch App Access Token Provider

Obtains an app access token through the OAuth client-credentials exchange and
caches it until shortly before it expires. One instance is created at startup
and handed to the stream page fetcher.
"""

import asyncio
import json
import logging
import time
from typing import Callable, Optional
import aiohttp
from core.exceptions import AuthConfigError, NetworkError, UpstreamAuthError
from core.models import Token

logger = logging.getLogger(__name__)

OAUTH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"

# Seconds subtracted from the token lifetime so it is refreshed before expiry
SAFETY_MARGIN_SECONDS = 60


class TokenManager:
    """Caches the app access token and coalesces concurrent refreshes"""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        client_id: Optional[str],
        client_secret: Optional[str],
        timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session = session
        self.client_id = client_id
        self._client_secret = client_secret
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._clock = clock
        self._token: Optional[Token] = None
        self._lock = asyncio.Lock()

    @property
    def cached_token(self) -> Optional[Token]:
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange"""
        self._token = None

    async def get_token(self) -> Token:
        """
        Return a valid app access token.

        A cached token is served until its safety-margined expiry. Callers that
        arrive while an exchange is in flight wait on the lock and then reuse
        the freshly cached token instead of starting their own exchange.
        """
        token = self._token
        if token and token.is_valid(self._clock()):
            return token

        async with self._lock:
            token = self._token
            if token and token.is_valid(self._clock()):
                return token

            self._token = await self._exchange()
            return self._token

    async def _exchange(self) -> Token:
        if not self.client_id or not self._client_secret:
            logger.error(
                "Missing Twitch credentials",
                extra={
                    "has_client_id": bool(self.client_id),
                    "has_client_secret": bool(self._client_secret),
                },
            )
            raise AuthConfigError(bool(self.client_id), bool(self._client_secret))

        logger.info("Requesting OAuth token from Twitch")

        form = {
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }

        try:
            async with self._session.post(
                OAUTH_TOKEN_URL, data=form, timeout=self._timeout
            ) as response:
                status = response.status
                if status < 200 or status >= 300:
                    body = await response.text()
                    logger.error(f"Twitch OAuth error: {status} {body}")
                    raise UpstreamAuthError(status, body)

                try:
                    payload = await response.json()
                except ValueError as e:
                    raise UpstreamAuthError(status, str(e)) from e
        except asyncio.TimeoutError:
            raise NetworkError(OAUTH_TOKEN_URL, "request timed out")
        except aiohttp.ClientError as e:
            raise NetworkError(OAUTH_TOKEN_URL, str(e)) from e

        try:
            access_token = payload["access_token"]
            lifetime = int(payload.get("expires_in", 0))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Malformed OAuth token response", extra={"status": status})
            raise UpstreamAuthError(status, json.dumps(payload, default=str)) from e

        if not isinstance(access_token, str) or not access_token:
            raise UpstreamAuthError(status, json.dumps(payload, default=str))

        expires_at = self._clock() + lifetime - SAFETY_MARGIN_SECONDS

        logger.info("OAuth token retrieved successfully", extra={"expires_in": lifetime})
        return Token(access_token=access_token, expires_at=expires_at)

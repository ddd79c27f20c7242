"""
Unit tests for TokenManager

Tests token caching, refresh and error mapping with a fake aiohttp session.
"""
import asyncio

import aiohttp
import pytest

from core.exceptions import AuthConfigError, NetworkError, UpstreamAuthError
from providers.token_provider import OAUTH_TOKEN_URL, SAFETY_MARGIN_SECONDS, TokenManager
from tests.fakes import FakeResponse, FakeSession, token_response


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTokenManager:
    """Test TokenManager"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def session(self):
        return FakeSession()

    @pytest.fixture
    def manager(self, session, clock):
        return TokenManager(session, "cid", "secret", clock=clock)

    @pytest.mark.asyncio
    async def test_exchange_sends_client_credentials(self, manager, session):
        """Test the exchange posts the form fields to the OAuth endpoint"""
        token = await manager.get_token()

        assert token.access_token == "app-token"
        assert len(session.posts) == 1
        assert session.posts[0]["url"] == OAUTH_TOKEN_URL
        assert session.posts[0]["data"] == {
            "client_id": "cid",
            "client_secret": "secret",
            "grant_type": "client_credentials",
        }

    @pytest.mark.asyncio
    async def test_token_reused_within_validity(self, manager, session, clock):
        """Test two calls inside the validity window make one exchange"""
        first = await manager.get_token()
        clock.now += 1800
        second = await manager.get_token()

        assert first is second
        assert len(session.posts) == 1

    @pytest.mark.asyncio
    async def test_expiry_includes_safety_margin(self, manager, clock):
        """Test the cached expiry is lifetime minus the safety margin"""
        token = await manager.get_token()
        assert token.expires_at == clock.now + 3600 - SAFETY_MARGIN_SECONDS

    @pytest.mark.asyncio
    async def test_refreshes_before_expiry(self, manager, session, clock):
        """Test a new exchange happens once inside the safety margin"""
        session.token_handler = lambda data: token_response(
            f"token-{len(session.posts)}", 3600
        )
        start = clock.now

        first = await manager.get_token()
        clock.now = start + 3600 - SAFETY_MARGIN_SECONDS - 1
        assert (await manager.get_token()) is first

        clock.now = start + 3600 - SAFETY_MARGIN_SECONDS
        second = await manager.get_token()

        assert second.access_token == "token-2"
        assert len(session.posts) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_exchange(self, session, clock):
        """Test concurrent calls without a cached token coalesce"""
        session.token_handler = lambda data: FakeResponse(
            payload={"access_token": "shared", "expires_in": 3600}, delay=0.01
        )
        manager = TokenManager(session, "cid", "secret", clock=clock)

        tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

        assert {token.access_token for token in tokens} == {"shared"}
        assert len(session.posts) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client_id, client_secret", [(None, "secret"), ("cid", None), (None, None), ("", "")]
    )
    async def test_missing_credentials_fail_before_network(
        self, session, clock, client_id, client_secret
    ):
        """Test AuthConfigError is raised without contacting Twitch"""
        manager = TokenManager(session, client_id, client_secret, clock=clock)

        with pytest.raises(AuthConfigError) as exc_info:
            await manager.get_token()

        assert exc_info.value.error_code == "AUTH_CONFIG_ERROR"
        assert exc_info.value.details == {
            "has_client_id": bool(client_id),
            "has_client_secret": bool(client_secret),
        }
        assert session.posts == []

    @pytest.mark.asyncio
    async def test_rejected_exchange_raises_upstream_auth_error(self, manager, session):
        """Test a non-success status carries the status and body"""
        session.token_handler = lambda data: FakeResponse(
            status=400, text='{"status":400,"message":"invalid client"}'
        )

        with pytest.raises(UpstreamAuthError) as exc_info:
            await manager.get_token()

        assert exc_info.value.status == 400
        assert "invalid client" in exc_info.value.body
        assert manager.cached_token is None

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, manager, session):
        """Test a failed exchange surfaces immediately after one attempt"""
        session.token_handler = lambda data: FakeResponse(status=503, text="unavailable")

        with pytest.raises(UpstreamAuthError):
            await manager.get_token()

        assert len(session.posts) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"expires_in": 3600},
            {"access_token": "tok", "expires_in": "soon"},
            {"access_token": None, "expires_in": 3600},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_reply_raises_upstream_auth_error(
        self, manager, session, payload
    ):
        """Test a success status with an unusable body is an auth failure"""
        session.token_handler = lambda data: FakeResponse(payload=payload)

        with pytest.raises(UpstreamAuthError) as exc_info:
            await manager.get_token()

        assert exc_info.value.status == 200
        assert manager.cached_token is None

    @pytest.mark.asyncio
    async def test_transport_failure_raises_network_error(self, manager, session):
        """Test connection errors are mapped to NetworkError"""
        session.token_handler = lambda data: FakeResponse(
            error=aiohttp.ClientConnectionError("connection refused")
        )

        with pytest.raises(NetworkError) as exc_info:
            await manager.get_token()

        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self, manager, session):
        """Test request timeouts are mapped to NetworkError"""
        session.token_handler = lambda data: FakeResponse(error=asyncio.TimeoutError())

        with pytest.raises(NetworkError) as exc_info:
            await manager.get_token()

        assert exc_info.value.details["reason"] == "request timed out"

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_exchange(self, manager, session):
        """Test invalidate drops the cached token"""
        await manager.get_token()
        manager.invalidate()
        await manager.get_token()

        assert len(session.posts) == 2

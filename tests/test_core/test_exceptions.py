import pytest
from core.exceptions import (
    AuthConfigError,
    InternalError,
    NetworkError,
    StreamListException,
    UpstreamAuthError,
    UpstreamFetchError,
    ValidationError,
    to_http_status,
    to_response_body,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_auth_config_error(self):
        error = AuthConfigError(has_client_id=True, has_client_secret=False)
        assert str(error) == "Twitch API credentials not configured"
        assert error.error_code == "AUTH_CONFIG_ERROR"
        assert error.details == {"has_client_id": True, "has_client_secret": False}

    def test_upstream_auth_error(self):
        error = UpstreamAuthError(400, "invalid client secret")
        assert error.status == 400
        assert error.body == "invalid client secret"
        assert str(error) == "Failed to get OAuth token: 400 invalid client secret"
        assert error.error_code == "UPSTREAM_AUTH_ERROR"

    def test_upstream_fetch_error(self):
        error = UpstreamFetchError(429, "Too Many Requests")
        assert error.status == 429
        assert error.body == "Too Many Requests"
        assert str(error) == "Failed to fetch streams: 429"
        assert error.details == {"status": 429, "body": "Too Many Requests"}

    def test_network_error(self):
        error = NetworkError("https://api.twitch.tv/helix/streams", "request timed out")
        assert error.error_code == "NETWORK_ERROR"
        assert "request timed out" in str(error)

    def test_validation_error(self):
        error = ValidationError("game_id", "is required")
        assert str(error) == "game_id is required"
        assert error.error_code == "VALIDATION_ERROR"

    def test_all_inherit_from_base(self):
        for error in (
            AuthConfigError(False, False),
            UpstreamAuthError(500, ""),
            UpstreamFetchError(500, ""),
            NetworkError("url", "reason"),
            ValidationError("field", "reason"),
        ):
            assert isinstance(error, StreamListException)


class TestHttpMapping:
    """Test the HTTP status and body mapping."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (AuthConfigError(False, False), 500),
            (UpstreamAuthError(401, "no"), 500),
            (UpstreamFetchError(503, "down"), 500),
            (NetworkError("url", "reset"), 500),
            (ValidationError("game_id", "is required"), 400),
            (InternalError(), 500),
            (StreamListException("unknown"), 500),
        ],
    )
    def test_status_codes(self, error, expected):
        assert to_http_status(error) == expected

    def test_validation_body(self):
        body = to_response_body(ValidationError("game_id", "is required"))
        assert body == {"error": "game_id is required"}

    def test_internal_error_body(self):
        body = to_response_body(UpstreamFetchError(502, "bad gateway"))
        assert body == {
            "error": "Failed to fetch streams",
            "message": "Failed to fetch streams: 502",
            "code": "UPSTREAM_FETCH_ERROR",
        }

import os
import sys
from typing import Generator, List

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings
from core.models import StreamRecord
from main import create_app
from tests.fakes import FakeSession, make_stream


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        allowed_origins=("http://localhost:5173", "https://streamlist-modern.vercel.app"),
        environment="test",
    )


@pytest.fixture
def test_client(settings, fake_session) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app backed by a fake Twitch session."""
    app = create_app(settings=settings, session=fake_session)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_records() -> List[StreamRecord]:
    return [
        StreamRecord.model_validate(make_stream("1", 50, "Valorant Ranked Grind", "Alpha")),
        StreamRecord.model_validate(make_stream("2", 200, "Chatting", "Bravo")),
        StreamRecord.model_validate(make_stream("3", 50, "valorant chill", "Charlie")),
        StreamRecord.model_validate(make_stream("4", 10, "Mythic+ pushing", "ValorantFan")),
    ]


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("TWITCH_CLIENT_ID", raising=False)
    monkeypatch.delenv("TWITCH_CLIENT_SECRET", raising=False)

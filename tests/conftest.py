"""Shared test fixtures for eleven-batch."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

TEST_ENV = {
    "HOST": "127.0.0.1",
    "PORT": "8000",
    "ELEVENLABS_BASE_URL": "https://api.elevenlabs.test",
    "REQUEST_TIMEOUT": "5",
    "INTER_REQUEST_DELAY": "0",
    "MAX_BATCHES": "20",
}


class FakeElevenLabs:
    """httpx.MockTransport handler imitating the ElevenLabs endpoints.

    Keys in ``good_keys`` synthesize ``b"AUDIO:<text>"``; every other key gets a
    401 JSON error. Texts in ``reject_texts`` fail with 422 whatever the key.
    ``quotas`` maps a key to (character_limit, character_count).
    """

    def __init__(self) -> None:
        self.good_keys: set[str] = set()
        self.quotas: dict[str, tuple[int, int]] = {}
        self.reject_texts: set[str] = set()
        self.requests: list[httpx.Request] = []

    @property
    def tts_keys(self) -> list[str]:
        """Keys used for text-to-speech calls, in call order."""
        return [
            r.headers["xi-api-key"] for r in self.requests if "/text-to-speech/" in r.url.path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.headers.get("xi-api-key", "")

        if request.url.path == "/v1/user":
            if key in self.quotas:
                limit, count = self.quotas[key]
                return httpx.Response(
                    200,
                    json={"subscription": {"character_limit": limit, "character_count": count}},
                )
            return httpx.Response(401, json={"detail": {"status": "invalid_api_key"}})

        text = json.loads(request.content)["text"]
        if text in self.reject_texts:
            return httpx.Response(422, json={"detail": "Unprocessable text"})
        if key in self.good_keys:
            return httpx.Response(200, content=b"AUDIO:" + text.encode())
        return httpx.Response(
            401, json={"detail": {"status": "quota_exceeded", "message": "Quota exceeded"}}
        )


@pytest.fixture
def mock_settings():
    """Settings pointing at a fake API host, with no inter-request delay."""
    with patch.dict("os.environ", TEST_ENV):
        from src.eleven_batch.config import Settings

        yield Settings(_env_file=None)


@pytest.fixture
def fake_api():
    """Fake ElevenLabs backend; tests mark keys as good via ``fake_api.good_keys``."""
    return FakeElevenLabs()


@pytest.fixture
def tts_client(mock_settings, fake_api):
    """ElevenLabsClient wired to the fake backend."""
    from src.eleven_batch.services.elevenlabs import ElevenLabsClient

    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api))
    return ElevenLabsClient(mock_settings, client=http)


@pytest.fixture
def fake_sleep():
    """Stand-in for asyncio.sleep that records the pauses."""
    return AsyncMock()


@pytest.fixture
def orchestrator(mock_settings, tts_client, fake_sleep):
    from src.eleven_batch.services.orchestrator import BatchOrchestrator

    return BatchOrchestrator(mock_settings, tts_client, sleep=fake_sleep)


@pytest.fixture
def app(mock_settings, fake_api):
    """FastAPI test app whose ElevenLabs client talks to the fake backend."""
    from src.eleven_batch.api.app import create_app

    app = create_app(mock_settings)
    app.state.client._client = httpx.AsyncClient(transport=httpx.MockTransport(fake_api))
    return app


@pytest.fixture
def client(app):
    """TestClient for the app."""
    from fastapi.testclient import TestClient

    return TestClient(app)

"""ElevenLabs HTTP client: text-to-speech and subscription lookup."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from src.eleven_batch.models.batch import KeyQuota, SynthesisOutcome, TTSConfig
from src.eleven_batch.services.keys import mask_api_key

if TYPE_CHECKING:
    from src.eleven_batch.config import Settings

logger = structlog.get_logger()


def clamp_alpha_stability(stability: float) -> float:
    """Snap a stability value onto the three levels the alpha model accepts."""
    if stability <= 0.25:
        return 0.0
    if stability >= 0.75:
        return 1.0
    return 0.5


def build_tts_payload(text: str, config: TTSConfig) -> dict[str, Any]:
    """Request body for /v1/text-to-speech. The alpha model only takes stability."""
    if config.is_alpha:
        voice_settings: dict[str, Any] = {
            "stability": clamp_alpha_stability(config.stability),
        }
    else:
        voice_settings = {
            "stability": config.stability,
            "similarity_boost": config.similarity_boost,
            "style": config.style,
            "use_speaker_boost": config.use_speaker_boost,
            "speed": config.speed,
        }
    return {"text": text, "model_id": config.model_id, "voice_settings": voice_settings}


class ElevenLabsClient:
    """Thin async wrapper around the ElevenLabs REST API.

    Failures are reported as values, never raised: a non-2xx response or a
    transport error yields ``SynthesisOutcome(success=False, error=...)``. Retrying
    with another key is the caller's job.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = settings.elevenlabs_base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout=settings.request_timeout)
        self._client = client

        logger.info("ElevenLabsClient initialized", base_url=self.base_url)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def synthesize(
        self, text: str, api_key: str, voice_id: str, config: TTSConfig
    ) -> SynthesisOutcome:
        """Synthesize one text block with one key. Never retries."""
        url = f"{self.base_url}/v1/text-to-speech/{voice_id}"
        params = {
            "output_format": config.output_format,
            "optimize_streaming_latency": config.latency,
        }
        headers = {
            "xi-api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

        try:
            resp = await self._request(
                "POST",
                url,
                params=params,
                headers=headers,
                json=build_tts_payload(text, config),
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # ValueError covers headers that cannot be encoded, e.g. a non-ASCII key
            logger.warning("TTS request failed", api_key=mask_api_key(api_key), error=str(e))
            return SynthesisOutcome(success=False, error=str(e) or "Network error")

        if resp.is_success:
            return SynthesisOutcome(success=True, audio=resp.content)

        return SynthesisOutcome(success=False, error=self._error_message(resp))

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            return json.dumps(resp.json())
        except ValueError:
            return f"HTTP Error: {resp.status_code}"

    async def fetch_subscription(self, api_key: str) -> KeyQuota:
        """Remaining character quota for a key; ``valid=False`` on any failure."""
        masked = mask_api_key(api_key)
        try:
            resp = await self._request(
                "GET", f"{self.base_url}/v1/user", headers={"xi-api-key": api_key}
            )
            if resp.is_success:
                subscription = resp.json()["subscription"]
                remaining = subscription["character_limit"] - subscription["character_count"]
                return KeyQuota(api_key=masked, valid=True, remaining=remaining)
            logger.info("Key rejected", api_key=masked, status=resp.status_code)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning("Subscription lookup failed", api_key=masked, error=str(e))
        return KeyQuota(api_key=masked, valid=False, remaining=0)

    async def inspect_keys(self, api_keys: Sequence[str]) -> list[KeyQuota]:
        """Look up quota for every key, one request at a time."""
        return [await self.fetch_subscription(key) for key in api_keys]

"""FastAPI route handlers: service info, model catalogue, parsing and key inspection."""

from typing import Any

import structlog
from fastapi import APIRouter, File, HTTPException, Request, UploadFile

from src.eleven_batch.models.batch import (
    ALPHA_MODEL_ID,
    ALPHA_STABILITY_LEVELS,
    MODEL_IDS,
    OUTPUT_FORMATS,
    BatchStatus,
)
from src.eleven_batch.services.keys import parse_api_keys
from src.eleven_batch.services.text_blocks import make_snippet, parse_text_blocks

logger = structlog.get_logger()


async def read_text_upload(file: UploadFile) -> str:
    """Decode an uploaded text file; BOM-tolerant."""
    content = await file.read()
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=400, detail=f"{file.filename or 'upload'} is not UTF-8 text"
        ) from e


def create_router() -> APIRouter:
    """Create the API router with service-level endpoints."""
    router = APIRouter()

    @router.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        registry = request.app.state.registry
        running = sum(1 for b in registry.batches.values() if b.status == BatchStatus.processing)
        return {
            "status": "healthy",
            "elevenlabs_api": request.app.state.client.base_url,
            "batches": {"total": len(registry.batches), "processing": running},
        }

    @router.get("/v1/models")
    async def list_models() -> dict[str, Any]:
        """Selectable synthesis options."""
        return {
            "models": MODEL_IDS,
            "alpha_model": ALPHA_MODEL_ID,
            "alpha_stability_levels": list(ALPHA_STABILITY_LEVELS),
            "output_formats": OUTPUT_FORMATS,
            "latency_levels": list(range(5)),
        }

    @router.post("/v1/text/parse")
    async def parse_text(request: Request, text_file: UploadFile = File(...)) -> dict[str, Any]:
        """Preview how a text document splits into blocks."""
        settings = request.app.state.settings
        blocks = parse_text_blocks(await read_text_upload(text_file))
        return {
            "count": len(blocks),
            "blocks": [
                {"position": i + 1, "snippet": make_snippet(text, settings.snippet_length)}
                for i, text in enumerate(blocks)
            ],
        }

    @router.post("/v1/keys/inspect")
    async def inspect_keys(request: Request, keys_file: UploadFile = File(...)) -> dict[str, Any]:
        """Remaining character quota of every key in the file."""
        keys = parse_api_keys(await read_text_upload(keys_file))
        if not keys:
            raise HTTPException(status_code=400, detail="No API keys provided")
        try:
            quotas = await request.app.state.client.inspect_keys(keys)
        except Exception as e:
            logger.error("Key inspection failed", error=str(e))
            raise HTTPException(status_code=500, detail=str(e)) from e
        return {
            "count": len(quotas),
            "valid": sum(1 for q in quotas if q.valid),
            "total_remaining": sum(q.remaining for q in quotas),
            "keys": [q.model_dump() for q in quotas],
        }

    @router.get("/")
    async def root(request: Request) -> dict[str, Any]:
        return {
            "service": "Eleven Batch",
            "version": request.app.version,
            "description": "Batch ElevenLabs TTS with API key rotation",
            "endpoints": {
                "health": "/health",
                "models": "/v1/models",
                "parse_text": "/v1/text/parse",
                "inspect_keys": "/v1/keys/inspect",
                "batches": "/v1/batches",
                "batch": "/v1/batches/{batch_id}",
                "archive": "/v1/batches/{batch_id}/archive",
                "block_audio": "/v1/batches/{batch_id}/blocks/{position}/audio",
            },
        }

    return router

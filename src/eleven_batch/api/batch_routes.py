"""FastAPI route handlers for batch synthesis runs."""

from typing import Any

import structlog
from fastapi import (
    APIRouter,
    BackgroundTasks,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
)
from pydantic import ValidationError

from src.eleven_batch.api.routes import read_text_upload
from src.eleven_batch.models.batch import BatchStatus, BatchSummary, TTSConfig
from src.eleven_batch.services.batches import BatchNotFoundError
from src.eleven_batch.services.keys import parse_api_keys
from src.eleven_batch.services.orchestrator import BatchInputError
from src.eleven_batch.services.text_blocks import parse_text_blocks

logger = structlog.get_logger()

_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "pcm": "audio/pcm",
    "ulaw": "audio/basic",
    "opus": "audio/ogg",
}


def create_batch_router() -> APIRouter:
    """Create the API router for batch endpoints."""
    router = APIRouter()

    def _get_registry(request: Request):
        return request.app.state.registry

    def _get_batch(request: Request, batch_id: str):
        try:
            return _get_registry(request).get(batch_id)
        except BatchNotFoundError as e:
            raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found") from e

    @router.post("/v1/batches", response_model=BatchSummary, status_code=202)
    async def start_batch(
        request: Request,
        background_tasks: BackgroundTasks,
        keys_file: UploadFile = File(...),
        text_file: UploadFile = File(...),
        voice_file: UploadFile | None = File(default=None),
        voice_id: str | None = Form(default=None),
        model_id: str | None = Form(default=None),
        stability: float = Form(default=0.5),
        similarity_boost: float = Form(default=0.75),
        style: float = Form(default=0.0),
        use_speaker_boost: bool = Form(default=True),
        speed: float = Form(default=1.0),
        output_format: str | None = Form(default=None),
        latency: int = Form(default=0),
    ) -> BatchSummary:
        """Validate inputs, register the batch and run it in the background."""
        settings = request.app.state.settings
        registry = _get_registry(request)

        api_keys = parse_api_keys(await read_text_upload(keys_file))
        if voice_file is not None and voice_file.filename:
            voice_id = (await read_text_upload(voice_file)).strip()
        raw_text = await read_text_upload(text_file)

        try:
            config = TTSConfig(
                model_id=model_id or settings.default_model_id,
                stability=stability,
                similarity_boost=similarity_boost,
                style=style,
                use_speaker_boost=use_speaker_boost,
                speed=speed,
                output_format=output_format or settings.default_output_format,
                latency=latency,
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=400, detail=e.errors(include_url=False, include_context=False)
            ) from e

        try:
            if not raw_text.strip():
                raise BatchInputError("No text provided")
            batch = registry.create(parse_text_blocks(raw_text), api_keys, voice_id or "", config)
        except BatchInputError as e:
            logger.info("Batch rejected", reason=str(e))
            raise HTTPException(status_code=400, detail=str(e)) from e

        background_tasks.add_task(registry.execute, batch.batch_id)
        return batch.summary()

    @router.get("/v1/batches")
    async def list_batches(request: Request) -> dict[str, Any]:
        batches = _get_registry(request).list_batches()
        return {
            "count": len(batches),
            "batches": [
                {
                    "batch_id": b.batch_id,
                    "status": b.status.value,
                    "progress": b.progress,
                    "total": len(b.records),
                    "created_at": b.created_at,
                }
                for b in batches
            ],
        }

    @router.get("/v1/batches/{batch_id}", response_model=BatchSummary)
    async def get_batch(request: Request, batch_id: str) -> BatchSummary:
        return _get_batch(request, batch_id).summary()

    @router.get("/v1/batches/{batch_id}/archive")
    async def download_archive(request: Request, batch_id: str) -> Response:
        """Zip of every successful block of a completed batch."""
        batch = _get_batch(request, batch_id)
        if batch.status != BatchStatus.completed:
            raise HTTPException(status_code=409, detail=f"Batch {batch_id} is still running")

        try:
            data = _get_registry(request).archive(batch_id)
        except Exception as e:
            logger.error("Archive export failed", batch_id=batch_id, error=str(e))
            raise HTTPException(status_code=500, detail=str(e)) from e
        if data is None:
            raise HTTPException(status_code=404, detail="No successful blocks to archive")

        filename = request.app.state.settings.archive_name
        return Response(
            content=data,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.get("/v1/batches/{batch_id}/blocks/{position}/audio")
    async def download_block(request: Request, batch_id: str, position: int) -> Response:
        """Audio of one successful block, addressed by its 1-based position."""
        _get_batch(request, batch_id)
        found = _get_registry(request).block_audio(batch_id, position)
        if found is None:
            raise HTTPException(status_code=404, detail=f"No audio for block {position}")

        filename, audio = found
        extension = filename.rsplit(".", 1)[-1]
        return Response(
            content=audio,
            media_type=_MEDIA_TYPES.get(extension, "application/octet-stream"),
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.delete("/v1/batches/{batch_id}")
    async def delete_batch(request: Request, batch_id: str) -> dict[str, Any]:
        batch = _get_batch(request, batch_id)
        if batch.status != BatchStatus.completed:
            raise HTTPException(status_code=409, detail=f"Batch {batch_id} is still running")
        _get_registry(request).remove(batch_id)
        return {"status": "success", "message": f"Batch {batch_id} deleted"}

    return router

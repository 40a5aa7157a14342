"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.eleven_batch.api.batch_routes import create_batch_router
from src.eleven_batch.api.routes import create_router
from src.eleven_batch.config import Settings
from src.eleven_batch.services.batches import BatchRegistry
from src.eleven_batch.services.elevenlabs import ElevenLabsClient
from src.eleven_batch.services.orchestrator import BatchOrchestrator

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    client = ElevenLabsClient(settings)
    orchestrator = BatchOrchestrator(settings, client)
    registry = BatchRegistry(settings, orchestrator)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Starting Eleven Batch service", api=settings.elevenlabs_base_url)
        yield
        logger.info("Shutting down Eleven Batch", batches=len(registry.batches))

    app = FastAPI(
        title="Eleven Batch",
        description="Batch ElevenLabs TTS with API key rotation",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.client = client
    app.state.orchestrator = orchestrator
    app.state.registry = registry
    app.include_router(create_router())
    app.include_router(create_batch_router())

    return app

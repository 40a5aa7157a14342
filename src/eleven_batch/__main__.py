"""Entry point for `python -m src.eleven_batch`."""

import logging

import structlog
import uvicorn

from src.eleven_batch.api.app import create_app
from src.eleven_batch.config import Settings

logger = structlog.get_logger()


def main() -> None:
    settings = Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    logger.info(
        "Starting Eleven Batch",
        host=settings.host,
        port=settings.port,
        elevenlabs_api=settings.elevenlabs_base_url,
        delay=settings.inter_request_delay,
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=logging.getLevelName(level).lower(),
    )


if __name__ == "__main__":
    main()

"""Batch orchestrator: drives every text block to a terminal state with key rotation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

import structlog

from src.eleven_batch.models.batch import BatchResult, BlockStatus, ProcessingRecord, TTSConfig
from src.eleven_batch.services.archive import build_archive
from src.eleven_batch.services.keys import mask_api_key, next_key
from src.eleven_batch.services.text_blocks import make_snippet, parse_text_blocks

if TYPE_CHECKING:
    from src.eleven_batch.config import Settings
    from src.eleven_batch.services.elevenlabs import ElevenLabsClient

logger = structlog.get_logger()

ALL_KEYS_FAILED = "All keys failed"

UpdateCallback = Callable[[list[ProcessingRecord], float], None]


class BatchInputError(ValueError):
    """Raised when a batch cannot start: missing keys, voice id or text."""


class BatchOrchestrator:
    """Sequential batch runner.

    Blocks are processed strictly in order. For each block, at most one attempt per
    key is made, drawing keys round-robin from a cursor that is shared by the whole
    batch. Every attempt is followed by ``inter_request_delay`` seconds of sleep.
    Remote failures never escape ``run``; they end up on the block's record.
    """

    def __init__(
        self,
        settings: Settings,
        client: ElevenLabsClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.inter_request_delay = settings.inter_request_delay
        self.snippet_length = settings.snippet_length
        self._sleep = sleep

    @staticmethod
    def validate_inputs(api_keys: Sequence[str], voice_id: str, blocks: Sequence[str]) -> None:
        if not api_keys:
            raise BatchInputError("No API keys provided")
        if not voice_id or not voice_id.strip():
            raise BatchInputError("No voice id provided")
        if any(ch.isspace() or not ch.isprintable() for ch in voice_id.strip()):
            raise BatchInputError("Voice id must not contain whitespace or control characters")
        if not blocks:
            raise BatchInputError("No valid text blocks found")

    def create_records(self, blocks: Sequence[str]) -> list[ProcessingRecord]:
        return [
            ProcessingRecord(index=i, text_snippet=make_snippet(text, self.snippet_length))
            for i, text in enumerate(blocks)
        ]

    async def attempt_block(
        self,
        record: ProcessingRecord,
        text: str,
        api_keys: Sequence[str],
        voice_id: str,
        config: TTSConfig,
        cursor: int,
    ) -> tuple[ProcessingRecord, int]:
        """Try keys for one processing block. Returns the terminal record and new cursor."""
        for _ in range(len(api_keys)):
            key, cursor = next_key(api_keys, cursor)
            outcome = await self.client.synthesize(text, key, voice_id, config)
            await self._sleep(self.inter_request_delay)

            if outcome.success and outcome.audio is not None:
                return record.succeed(outcome.audio, mask_api_key(key)), cursor

            logger.warning(
                "Synthesis attempt failed",
                block=record.index + 1,
                api_key=mask_api_key(key),
                error=outcome.error,
            )

        return record.fail(ALL_KEYS_FAILED), cursor

    async def run(
        self,
        blocks: Sequence[str],
        api_keys: Sequence[str],
        voice_id: str,
        config: TTSConfig,
        on_update: UpdateCallback | None = None,
        cursor: int = 0,
    ) -> BatchResult:
        """Synthesize every block and archive the successes."""
        self.validate_inputs(api_keys, voice_id, blocks)
        voice_id = voice_id.strip()
        records = self.create_records(blocks)
        total = len(records)
        progress = 0.0

        logger.info(
            "Batch started",
            blocks=total,
            keys=len(api_keys),
            voice_id=voice_id,
            model=config.model_id,
        )
        self._notify(on_update, records, progress)

        for i, text in enumerate(blocks):
            records[i] = records[i].start()
            self._notify(on_update, records, progress)

            records[i], cursor = await self.attempt_block(
                records[i], text, api_keys, voice_id, config, cursor
            )
            progress = (i + 1) / total
            self._notify(on_update, records, progress)

        result = BatchResult(
            records=records,
            cursor=cursor,
            progress=progress,
            output_format=config.output_format,
        )
        self._finalize_archive(result)

        logger.info(
            "Batch completed",
            succeeded=result.success_count,
            failed=result.error_count,
            archive=result.archive is not None,
        )
        return result

    async def run_text(
        self,
        raw_text: str,
        api_keys: Sequence[str],
        voice_id: str,
        config: TTSConfig,
        on_update: UpdateCallback | None = None,
    ) -> BatchResult:
        """Parse ``raw_text`` into blocks, then ``run`` them."""
        if not raw_text or not raw_text.strip():
            raise BatchInputError("No text provided")
        return await self.run(parse_text_blocks(raw_text), api_keys, voice_id, config, on_update)

    @staticmethod
    def _finalize_archive(result: BatchResult) -> None:
        if not any(r.status == BlockStatus.success for r in result.records):
            return
        try:
            result.archive = build_archive(result.successful_files())
        except Exception as e:
            logger.error("Archive construction failed", error=str(e))
            result.archive_error = f"Archive construction failed: {e}"

    @staticmethod
    def _notify(
        on_update: UpdateCallback | None, records: list[ProcessingRecord], progress: float
    ) -> None:
        if on_update is None:
            return
        try:
            on_update(list(records), progress)
        except Exception as e:
            logger.warning("Progress callback failed", error=str(e))

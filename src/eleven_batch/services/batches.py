"""In-memory registry of batch runs for the HTTP surface."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from src.eleven_batch.models.batch import (
    BatchResult,
    BatchStatus,
    BatchSummary,
    BlockStatus,
    ProcessingRecord,
    TTSConfig,
)
from src.eleven_batch.services.archive import block_filename, build_archive

if TYPE_CHECKING:
    from src.eleven_batch.config import Settings
    from src.eleven_batch.services.orchestrator import BatchOrchestrator

logger = structlog.get_logger()


@dataclass
class BatchRun:
    """Live state of one batch, updated by the orchestrator callback."""

    batch_id: str
    voice_id: str
    config: TTSConfig
    blocks: list[str]
    api_keys: list[str] = field(repr=False)
    records: list[ProcessingRecord] = field(default_factory=list)
    status: BatchStatus = BatchStatus.idle
    progress: float = 0.0
    result: BatchResult | None = None
    error: str | None = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def summary(self) -> BatchSummary:
        return BatchSummary(
            batch_id=self.batch_id,
            status=self.status,
            progress=self.progress,
            voice_id=self.voice_id,
            model_id=self.config.model_id,
            total=len(self.records),
            succeeded=sum(1 for r in self.records if r.status == BlockStatus.success),
            failed=sum(1 for r in self.records if r.status == BlockStatus.error),
            records=list(self.records),
            archive_available=self.result is not None and self.result.archive is not None,
            archive_error=self.result.archive_error if self.result else self.error,
        )


class BatchNotFoundError(KeyError):
    """Unknown batch id."""


class BatchRegistry:
    """Creates, runs and tracks batches. Nothing survives a process restart."""

    def __init__(self, settings: Settings, orchestrator: BatchOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.max_batches = settings.max_batches
        self.batches: dict[str, BatchRun] = {}

    def create(
        self,
        blocks: Sequence[str],
        api_keys: Sequence[str],
        voice_id: str,
        config: TTSConfig,
    ) -> BatchRun:
        """Validate inputs and register a pending batch. Raises ``BatchInputError``."""
        self.orchestrator.validate_inputs(api_keys, voice_id, blocks)
        batch = BatchRun(
            batch_id=str(uuid.uuid4())[:8],
            voice_id=voice_id.strip(),
            config=config,
            blocks=list(blocks),
            api_keys=list(api_keys),
            records=self.orchestrator.create_records(blocks),
        )
        self._evict()
        self.batches[batch.batch_id] = batch
        logger.info("Batch registered", batch_id=batch.batch_id, blocks=len(batch.blocks))
        return batch

    async def execute(self, batch_id: str) -> None:
        """Run a registered batch to completion. Batches removed before they start are skipped."""
        batch = self.batches.get(batch_id)
        if batch is None:
            logger.info("Batch removed before start", batch_id=batch_id)
            return
        batch.status = BatchStatus.processing

        def _on_update(records: list[ProcessingRecord], progress: float) -> None:
            batch.records = records
            batch.progress = progress

        try:
            batch.result = await self.orchestrator.run(
                batch.blocks, batch.api_keys, batch.voice_id, batch.config, _on_update
            )
            batch.records = batch.result.records
            batch.progress = batch.result.progress
        except Exception as e:
            logger.exception("Batch failed", batch_id=batch_id, error=str(e))
            batch.error = str(e)
        finally:
            batch.status = BatchStatus.completed
            # Keys are not needed once the run is over
            batch.api_keys = []

    def get(self, batch_id: str) -> BatchRun:
        batch = self.batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    def list_batches(self) -> list[BatchRun]:
        return list(self.batches.values())

    def remove(self, batch_id: str) -> bool:
        return self.batches.pop(batch_id, None) is not None

    def archive(self, batch_id: str) -> bytes | None:
        """Zip of all successful blocks so far, or ``None`` when there are none."""
        batch = self.get(batch_id)
        files = [
            (block_filename(r.index, batch.config.output_format), r.audio)
            for r in batch.records
            if r.status == BlockStatus.success and r.audio is not None
        ]
        if not files:
            return None
        if batch.result is not None and batch.result.archive is not None:
            return batch.result.archive
        return build_archive(files)

    def block_audio(self, batch_id: str, position: int) -> tuple[str, bytes] | None:
        """Audio of the block at 1-based ``position`` if it succeeded."""
        batch = self.get(batch_id)
        if position < 1 or position > len(batch.records):
            return None
        record = batch.records[position - 1]
        if record.status != BlockStatus.success or record.audio is None:
            return None
        return block_filename(record.index, batch.config.output_format), record.audio

    def _evict(self) -> None:
        finished = [b for b in self.batches.values() if b.status == BatchStatus.completed]
        while len(self.batches) >= self.max_batches and finished:
            oldest = finished.pop(0)
            del self.batches[oldest.batch_id]
            logger.info("Batch evicted", batch_id=oldest.batch_id)

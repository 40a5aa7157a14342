"""Pydantic models for batch synthesis: config, per-block records, results."""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.eleven_batch.services.archive import block_filename

ALPHA_MODEL_ID = "eleven_v3"

MODEL_IDS = [
    "eleven_multilingual_v2",
    "eleven_flash_v2",
    "eleven_turbo_v2",
    "eleven_flash_v2_5",
    "eleven_turbo_v2_5",
    ALPHA_MODEL_ID,
]

OUTPUT_FORMATS = ["mp3_44100_128", "mp3_22050_32", "pcm_16000"]

# Stability levels accepted by the alpha model
ALPHA_STABILITY_LEVELS = (0.0, 0.5, 1.0)


class InvalidTransitionError(RuntimeError):
    """Raised when a processing record is moved along an edge that does not exist."""


class BlockStatus(str, Enum):
    """Lifecycle of a single text block."""

    pending = "pending"
    processing = "processing"
    success = "success"
    error = "error"


class BatchStatus(str, Enum):
    """Status of a whole batch run."""

    idle = "idle"
    processing = "processing"
    completed = "completed"


class TTSConfig(BaseModel):
    """Synthesis parameters, fixed for the duration of one batch."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str = Field(default="eleven_multilingual_v2", description="ElevenLabs model id")
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.75, ge=0.0, le=1.0)
    style: float = Field(default=0.0, ge=0.0, le=1.0, description="Style exaggeration")
    use_speaker_boost: bool = True
    speed: float = Field(default=1.0, ge=0.5, le=2.0, description="Speaking rate")
    output_format: str = "mp3_44100_128"
    latency: int = Field(default=0, ge=0, le=4, description="optimize_streaming_latency level")

    @property
    def is_alpha(self) -> bool:
        return self.model_id == ALPHA_MODEL_ID


class ProcessingRecord(BaseModel):
    """Per-block state. Transitions return a new record and never mutate this one."""

    model_config = ConfigDict(frozen=True)

    index: int
    text_snippet: str = ""
    status: BlockStatus = BlockStatus.pending
    audio: bytes | None = Field(default=None, exclude=True, repr=False)
    api_key_used: str | None = None
    message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (BlockStatus.success, BlockStatus.error)

    def _require(self, expected: BlockStatus, target: BlockStatus) -> None:
        if self.status != expected:
            raise InvalidTransitionError(
                f"Block {self.index}: cannot move from {self.status.value} to {target.value}"
            )

    def start(self) -> "ProcessingRecord":
        self._require(BlockStatus.pending, BlockStatus.processing)
        return self.model_copy(update={"status": BlockStatus.processing})

    def succeed(self, audio: bytes, api_key_used: str) -> "ProcessingRecord":
        self._require(BlockStatus.processing, BlockStatus.success)
        return self.model_copy(
            update={
                "status": BlockStatus.success,
                "audio": audio,
                "api_key_used": api_key_used,
            }
        )

    def fail(self, message: str) -> "ProcessingRecord":
        self._require(BlockStatus.processing, BlockStatus.error)
        return self.model_copy(update={"status": BlockStatus.error, "message": message})


class SynthesisOutcome(BaseModel):
    """Result of one synthesis request: audio on success, an error text otherwise."""

    success: bool
    audio: bytes | None = Field(default=None, repr=False)
    error: str | None = None


class KeyQuota(BaseModel):
    """Remaining character quota for one (masked) API key."""

    api_key: str
    valid: bool
    remaining: int = 0


class BatchResult(BaseModel):
    """Outcome of a finished batch."""

    records: list[ProcessingRecord]
    cursor: int = 0
    progress: float = 0.0
    output_format: str = "mp3_44100_128"
    archive: bytes | None = Field(default=None, exclude=True, repr=False)
    archive_error: str | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.records if r.status == BlockStatus.success)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.records if r.status == BlockStatus.error)

    def successful_files(self) -> Iterator[tuple[str, bytes]]:
        """Yield (archive name, audio) for every successful block, in block order."""
        for record in self.records:
            if record.status == BlockStatus.success and record.audio is not None:
                yield block_filename(record.index, self.output_format), record.audio


class BatchSummary(BaseModel):
    """Serializable view of a batch for the HTTP surface."""

    model_config = ConfigDict(protected_namespaces=())

    batch_id: str
    status: BatchStatus
    progress: float
    voice_id: str
    model_id: str
    total: int
    succeeded: int
    failed: int
    records: list[ProcessingRecord]
    archive_available: bool = False
    archive_error: str | None = None

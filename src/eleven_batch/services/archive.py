"""Zip archive packaging for synthesized audio blocks."""

import io
import zipfile
from collections.abc import Iterable

import structlog

logger = structlog.get_logger()

_CODEC_EXTENSIONS = {"mp3": "mp3", "pcm": "pcm", "ulaw": "ulaw", "opus": "opus"}


def audio_extension(output_format: str) -> str:
    """Map an ElevenLabs output format (e.g. ``mp3_44100_128``) to a file extension."""
    codec = output_format.split("_", 1)[0].lower()
    return _CODEC_EXTENSIONS.get(codec, "mp3")


def block_filename(index: int, output_format: str = "mp3_44100_128") -> str:
    """Archive entry name for the block at 0-based ``index``."""
    return f"Block_{index + 1}.{audio_extension(output_format)}"


def build_archive(files: Iterable[tuple[str, bytes]]) -> bytes:
    """Pack (name, payload) pairs into an in-memory zip and return its bytes."""
    buffer = io.BytesIO()
    count = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in files:
            archive.writestr(name, payload)
            count += 1

    data = buffer.getvalue()
    logger.info("Archive built", entries=count, size=len(data))
    return data

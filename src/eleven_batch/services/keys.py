"""API key helpers: key-file parsing, display masking, round-robin rotation."""

from collections.abc import Sequence

MASK_PLACEHOLDER = "****"
MIN_MASKABLE_LENGTH = 8


def parse_api_keys(content: str) -> list[str]:
    """One key per line; blank lines dropped, order kept."""
    return [line.strip() for line in content.splitlines() if line.strip()]


def mask_api_key(key: str) -> str:
    """Return ``abcd...wxyz`` for a key, or ``****`` when it is too short to reveal any part."""
    if len(key) < MIN_MASKABLE_LENGTH:
        return MASK_PLACEHOLDER
    return f"{key[:4]}...{key[-4:]}"


def next_key(pool: Sequence[str], cursor: int) -> tuple[str, int]:
    """Pick the key under ``cursor`` and return it with the advanced cursor.

    The cursor only ever grows; wrapping happens through the modulo, so the same
    cursor can be carried across blocks of a batch.
    """
    if not pool:
        raise ValueError("API key pool is empty")
    return pool[cursor % len(pool)], cursor + 1

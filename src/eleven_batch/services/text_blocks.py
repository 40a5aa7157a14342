"""Splitting of numbered text documents into synthesis blocks.

Expected input layout::

    1. Title
    Body text of the first block
    2. Another title
    Body text of the second block

A header line is digits, an optional dot and an optional title. The header itself
is not synthesized.
"""

import re

# Newline followed by a complete header line (which must itself end in a newline)
_BOUNDARY_RE = re.compile(r"\n(?=\d+\.?(?:[^\S\n][^\n]*)?\n)")
_HEADER_RE = re.compile(r"^\d+\.?(?:[^\S\n][^\n]*)?$")


def parse_text_blocks(raw_text: str) -> list[str]:
    """Split ``raw_text`` into ordered, trimmed block bodies."""
    raw_text = raw_text.replace("\r\n", "\n")
    stripped = raw_text.strip()
    if not stripped:
        return []

    parts = _BOUNDARY_RE.split(raw_text)
    if len(parts) == 1 and not _HEADER_RE.match(stripped.split("\n", 1)[0]):
        return [stripped]

    blocks = []
    for part in parts:
        lines = part.strip().split("\n")
        # Single-line segments (header without body) are dropped
        if len(lines) >= 2:
            body = "\n".join(lines[1:]).strip()
            if body:
                blocks.append(body)

    if not blocks:
        return [stripped]
    return blocks


def make_snippet(text: str, limit: int = 60) -> str:
    """Short one-line preview of a block for logs and listings."""
    snippet = text[:limit].replace("\n", " ")
    if len(text) > limit:
        snippet += "..."
    return snippet

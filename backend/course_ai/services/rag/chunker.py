"""
Fixed-window text chunking.

Handouts are split into overlapping character windows before embedding.
With the defaults (800 chars, 100 overlap) consecutive chunks share their
last/first 100 characters so a sentence cut at a window edge still appears
whole in one of them.
"""

import re
from dataclasses import dataclass

from course_ai.core.errors import validation_error

DEFAULT_CHUNK_SIZE = 800
DEFAULT_OVERLAP = 100


@dataclass(frozen=True)
class DocumentChunk:
    text: str
    index: int
    source_code: str


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """
    Split text into windows of chunk_size, advancing by chunk_size - overlap.

    Windows that are blank after trimming are dropped; kept windows are
    returned untrimmed so the overlap arithmetic stays exact.
    """
    if not text or not text.strip():
        raise validation_error("Cannot chunk empty text")

    if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size:
        raise validation_error("Invalid chunk size or overlap parameters")

    step = chunk_size - overlap
    chunks = []
    offset = 0
    while offset < len(text):
        chunk = text[offset:offset + chunk_size]
        if chunk.strip():
            chunks.append(chunk)
        offset += step

    return chunks


def build_chunks(
    text: str,
    source_code: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[DocumentChunk]:
    """Chunk text and number the kept windows consecutively."""
    return [
        DocumentChunk(text=chunk, index=i, source_code=source_code)
        for i, chunk in enumerate(chunk_text(text, chunk_size, overlap))
    ]


def is_valid_text(text: str, min_length: int = 10) -> bool:
    """True when text is long enough and at least half of it is letters."""
    if not text or len(text) < min_length:
        return False

    letter_count = len(re.findall(r"[a-zA-Z]", text))
    return letter_count >= len(text) * 0.5


def sanitize_input(text: str | None) -> str:
    """Trim and collapse runs of whitespace."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.strip())

"""Text helpers including boundary-aware chunking."""

from __future__ import annotations

from typing import Iterable

DEFAULT_CHUNK_CHARS = 2048

_SENTENCE_BREAKS = (". ", "! ", "? ")


def _find_cut(text: str, start: int, end: int, max_chars: int) -> int:
    """Return the furthest natural cut point in ``text[start:end]``.

    A boundary only counts when it lies past the middle of the window, so every
    chunk is at least half of ``max_chars`` long except the last one.
    """
    midpoint = start + max_chars / 2

    for separator in ("\n\n", "\n"):
        position = text.rfind(separator, start, end)
        if position > midpoint:
            return position + len(separator)

    position = max(text.rfind(separator, start, end) for separator in _SENTENCE_BREAKS)
    if position > midpoint:
        return position + 2

    position = text.rfind(" ", start, end)
    if position > midpoint:
        return position + 1

    return end


def chunk_text(text: str, *, max_chars: int = DEFAULT_CHUNK_CHARS) -> list[str]:
    """Split text into chunks of at most ``max_chars`` characters.

    Cuts prefer paragraph breaks, then line breaks, then sentence ends, then
    spaces; a chunk is hard-cut only when none of those exist in the second half
    of the window. Joining the chunks gives back ``text`` unchanged.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")
    if not text:
        return []
    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = start + max_chars
        if end < len(text):
            end = _find_cut(text, start, end, max_chars)
        chunks.append(text[start:end])
        start = end
    return chunks


def non_blank(chunks: Iterable[str]) -> list[str]:
    """Drop chunks that contain only whitespace."""
    return [chunk for chunk in chunks if chunk.strip()]


def preview_text(text: str, limit: int = 300) -> str:
    """Return the first ``limit`` characters, marking truncation with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

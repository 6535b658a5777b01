"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

from omnifind.models import FileDescriptor, FileInfo, Modality
from omnifind.utils.text import preview_text

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".rtf"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".mkv"})

MIME_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".rtf": "text/rtf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
}

_MIME_PREFIXES = (
    ("text/", Modality.TEXT),
    ("image/", Modality.IMAGE),
    ("video/", Modality.VIDEO),
)


def get_file_extension(name: str) -> str:
    """Return the extension of ``name`` including the dot, as written."""
    return os.path.splitext(name)[1]


def get_mime_type(name: str) -> str | None:
    """Map a file name to a MIME type using the supported-extension table."""
    return MIME_TYPES.get(get_file_extension(name).lower())


def classify_file(descriptor: FileDescriptor) -> Modality | None:
    """Decide which modality handles ``descriptor``, or ``None`` if unsupported."""
    declared = (descriptor.declared_type or "").strip().lower()
    if declared:
        for prefix, modality in _MIME_PREFIXES:
            if declared.startswith(prefix):
                return modality

    extension = get_file_extension(descriptor.name).lower()
    if extension in TEXT_EXTENSIONS:
        return Modality.TEXT
    if extension in IMAGE_EXTENSIONS:
        return Modality.IMAGE
    if extension in VIDEO_EXTENSIONS:
        return Modality.VIDEO
    return None


def make_record_id(path: Path | str) -> str:
    """Derive a stable record id from the absolute path of a file."""
    normalized = str(Path(path).expanduser().resolve())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def get_file_info(path: Path | str) -> FileInfo:
    """Collect size, modification time and a text preview for ``path``.

    Never raises: unreadable files come back with ``error`` set.
    """
    path = Path(path)
    try:
        stat = path.stat()
        info = FileInfo(
            name=path.name,
            path=str(path),
            size=stat.st_size,
            modified_at=stat.st_mtime,
        )
        if get_file_extension(path.name).lower() in TEXT_EXTENSIONS:
            content = path.read_text(encoding="utf-8", errors="replace")
            info.preview = preview_text(content)
        return info
    except OSError:
        return FileInfo(
            name=path.name,
            path=str(path),
            error="Could not read file information",
        )

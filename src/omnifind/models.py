"""Core OmniFind data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

import numpy as np


class Modality(str, Enum):
    """Which embedding path processes a file."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True, slots=True)
class FileDescriptor:
    """A file selected for indexing, as produced by a picker or a folder scan."""

    locator: str
    name: str
    declared_type: str | None = None
    size_bytes: int | None = None

    @classmethod
    def from_path(cls, path: Path) -> "FileDescriptor":
        from omnifind.utils.files import get_mime_type

        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError:
            size = None
        return cls(
            locator=str(path),
            name=path.name,
            declared_type=get_mime_type(path.name),
            size_bytes=size,
        )


@dataclass(slots=True)
class IndexRecord:
    """Embedding of one file as persisted by the vector store."""

    id: str
    path: str
    modality: Modality
    embedding: np.ndarray
    indexed_at: datetime


@dataclass(slots=True)
class SearchResult:
    """Stored record matched by a query, with its presentation score."""

    id: str
    path: str
    modality: Modality
    embedding: np.ndarray
    indexed_at: datetime
    score: float | None = None
    distance: float | None = None

    @classmethod
    def from_record(
        cls, record: IndexRecord, *, score: float | None, distance: float | None
    ) -> "SearchResult":
        return cls(
            id=record.id,
            path=record.path,
            modality=record.modality,
            embedding=record.embedding,
            indexed_at=record.indexed_at,
            score=score,
            distance=distance,
        )


@dataclass(slots=True)
class BatchOutcome:
    """Result of indexing one descriptor inside a batch."""

    descriptor: FileDescriptor
    success: bool
    record_id: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, descriptor: FileDescriptor, record_id: str) -> "BatchOutcome":
        return cls(descriptor=descriptor, success=True, record_id=record_id)

    @classmethod
    def failed(cls, descriptor: FileDescriptor, error: Exception) -> "BatchOutcome":
        return cls(descriptor=descriptor, success=False, error=str(error))


@dataclass(slots=True)
class FrameResult:
    """Outcome of embedding one sampled video frame."""

    timestamp_ms: int
    embedding: np.ndarray | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.embedding is not None


@dataclass(slots=True)
class FileInfo:
    """Display metadata for an indexed path."""

    name: str
    path: str
    size: int | None = None
    modified_at: float | None = None
    preview: str | None = None
    error: str | None = None

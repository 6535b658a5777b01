"""Tests for core data models."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest

from omnifind.errors import UnsupportedTypeError
from omnifind.models import (
    BatchOutcome,
    FileDescriptor,
    FrameResult,
    IndexRecord,
    Modality,
    SearchResult,
)


class TestFileDescriptor:
    """Test FileDescriptor dataclass."""

    def test_create_descriptor(self) -> None:
        descriptor = FileDescriptor(locator="/tmp/a.txt", name="a.txt")

        assert descriptor.declared_type is None
        assert descriptor.size_bytes is None

    def test_descriptor_is_immutable(self) -> None:
        descriptor = FileDescriptor(locator="/tmp/a.txt", name="a.txt")

        with pytest.raises(FrozenInstanceError):
            descriptor.name = "b.txt"  # type: ignore[misc]

    def test_from_path(self, tmp_path: Path) -> None:
        """Should fill type and size from the file."""
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"0123456789")

        descriptor = FileDescriptor.from_path(path)

        assert descriptor.locator == str(path)
        assert descriptor.name == "clip.mp4"
        assert descriptor.declared_type == "video/mp4"
        assert descriptor.size_bytes == 10

    def test_from_missing_path(self, tmp_path: Path) -> None:
        descriptor = FileDescriptor.from_path(tmp_path / "missing.txt")

        assert descriptor.size_bytes is None
        assert descriptor.declared_type == "text/plain"


class TestModality:
    def test_values(self) -> None:
        assert Modality("text") is Modality.TEXT
        assert Modality.IMAGE.value == "image"
        assert Modality.VIDEO == "video"


class TestSearchResult:
    def test_from_record(self) -> None:
        record = IndexRecord(
            id="abc",
            path="/tmp/a.txt",
            modality=Modality.TEXT,
            embedding=np.zeros(3, dtype="float32"),
            indexed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

        result = SearchResult.from_record(record, score=0.75, distance=0.125)

        assert result.id == "abc"
        assert result.modality is Modality.TEXT
        assert result.score == 0.75
        assert result.distance == 0.125


class TestBatchOutcome:
    def test_ok(self) -> None:
        descriptor = FileDescriptor(locator="/tmp/a.txt", name="a.txt")
        outcome = BatchOutcome.ok(descriptor, "id-1")

        assert outcome.success is True
        assert outcome.record_id == "id-1"
        assert outcome.error is None

    def test_failed_keeps_tagged_reason(self) -> None:
        descriptor = FileDescriptor(locator="/tmp/a.bin", name="a.bin")
        outcome = BatchOutcome.failed(descriptor, UnsupportedTypeError("a.bin"))

        assert outcome.success is False
        assert outcome.error == "[classifier] Unsupported file type: a.bin"


class TestFrameResult:
    def test_ok_flag(self) -> None:
        assert FrameResult(timestamp_ms=0, embedding=np.ones(2)).ok
        assert not FrameResult(timestamp_ms=0, error="boom").ok

"""Tests for local content access."""

from __future__ import annotations

from pathlib import Path

import pytest

from omnifind.errors import NotFoundError, ProcessingError
from omnifind.ingestion.content import LocalContentAccess, resolve_locator


class TestResolveLocator:
    def test_plain_path(self, tmp_path: Path) -> None:
        assert resolve_locator(str(tmp_path / "a.txt")) == tmp_path / "a.txt"

    def test_file_uri_is_decoded(self) -> None:
        """file:// URIs are stripped and percent-decoded."""
        assert resolve_locator("file:///tmp/My%20Notes/a.txt") == Path("/tmp/My Notes/a.txt")


class TestLocalContentAccess:
    """Test LocalContentAccess reads."""

    def test_read_text(self, tmp_path: Path) -> None:
        path = tmp_path / "note.md"
        path.write_text("héllo", encoding="utf-8")

        assert LocalContentAccess().read_text(str(path)) == "héllo"

    def test_read_text_from_uri(self, tmp_path: Path) -> None:
        path = tmp_path / "note.txt"
        path.write_text("uri", encoding="utf-8")

        assert LocalContentAccess().read_text(path.as_uri()) == "uri"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError) as excinfo:
            LocalContentAccess().read_text(str(tmp_path / "missing.txt"))

        assert excinfo.value.component == "content"

    def test_directory_is_not_content(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            LocalContentAccess().resolve(tmp_path)

    def test_undecodable_text(self, tmp_path: Path) -> None:
        path = tmp_path / "binary.txt"
        path.write_bytes(b"\xff\xfe\xfa")

        with pytest.raises(ProcessingError):
            LocalContentAccess().read_text(path)

    def test_open_stream(self, tmp_path: Path) -> None:
        path = tmp_path / "pic.png"
        path.write_bytes(b"bytes")

        with LocalContentAccess().open_stream(path) as handle:
            assert handle.read() == b"bytes"

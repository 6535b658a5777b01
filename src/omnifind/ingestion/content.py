"""Scoped access to file content addressed by locator."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlparse

from omnifind.errors import NotFoundError, ProcessingError


def resolve_locator(locator: str | Path) -> Path:
    """Turn a plain path or a ``file://`` URI into a local path."""
    text = str(locator)
    if text.startswith("file://"):
        return Path(unquote(urlparse(text).path))
    return Path(text).expanduser()


class LocalContentAccess:
    """Reads content from the local filesystem."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def resolve(self, locator: str | Path) -> Path:
        path = resolve_locator(locator)
        if not path.is_file():
            raise NotFoundError(locator)
        return path

    def read_text(self, locator: str | Path) -> str:
        path = self.resolve(locator)
        try:
            return path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as exc:
            raise ProcessingError("content", f"Cannot decode {path} as {self.encoding}", exc) from exc
        except FileNotFoundError as exc:
            raise NotFoundError(locator) from exc

    def open_stream(self, locator: str | Path) -> BinaryIO:
        path = self.resolve(locator)
        try:
            return path.open("rb")
        except FileNotFoundError as exc:
            raise NotFoundError(locator) from exc

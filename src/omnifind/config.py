"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from omnifind.embedding.encoder import (
    DEFAULT_TEXT_MODEL,
    DEFAULT_VISION_MODEL,
    EMBEDDING_DIMENSION,
)


def _get_default_db_path() -> Path:
    """Get the default database path based on platform and execution context."""
    user_db = Path.home() / "Documents" / "OmniFind" / "omnifind.db"

    # Frozen bundles cannot rely on the working directory
    if getattr(sys, "frozen", False):
        return user_db

    local_db = Path("data/omnifind.db")
    if local_db.exists():
        return local_db

    return user_db


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    text_model: str = DEFAULT_TEXT_MODEL
    vision_model: str = DEFAULT_VISION_MODEL
    dimension: int = EMBEDDING_DIMENSION
    chunk_chars: int = 2048
    frame_count: int = 10
    fallback_duration_ms: int = 10_000
    distance_threshold: float = 0.5
    search_limit: int = 20

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

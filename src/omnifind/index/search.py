"""Semantic search interface."""

from __future__ import annotations

from typing import List

from omnifind.embedding.modality import ModalityEmbedder
from omnifind.errors import OmniFindError, ProcessingError
from omnifind.index.storage import (
    DEFAULT_DISTANCE_THRESHOLD,
    DEFAULT_SEARCH_LIMIT,
    SQLiteVectorStore,
)
from omnifind.models import SearchResult


class Searcher:
    """High-level API to query the vector store with free text."""

    def __init__(self, embedder: ModalityEmbedder, store: SQLiteVectorStore) -> None:
        self.embedder = embedder
        self.store = store

    def search(
        self,
        query: str,
        *,
        limit: int = DEFAULT_SEARCH_LIMIT,
        threshold: float = DEFAULT_DISTANCE_THRESHOLD,
    ) -> List[SearchResult]:
        try:
            embedding = self.embedder.embed_text_content(query)
            return self.store.search(embedding, limit=limit, threshold=threshold)
        except OmniFindError:
            raise
        except Exception as exc:
            raise ProcessingError("search", "Failed to search files", exc) from exc

"""File indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from omnifind.embedding.modality import ModalityEmbedder
from omnifind.errors import OmniFindError, ProcessingError, UnsupportedTypeError
from omnifind.index.scanner import FolderScanner, ScanProgress
from omnifind.index.storage import SQLiteVectorStore
from omnifind.ingestion.content import resolve_locator
from omnifind.models import BatchOutcome, FileDescriptor, IndexRecord
from omnifind.utils.files import classify_file, make_record_id

LOGGER = logging.getLogger(__name__)

BatchProgress = Callable[[int, int], None]


@dataclass(slots=True)
class IndexStats:
    indexed: int = 0
    failed: int = 0
    outcomes: list[BatchOutcome] = field(default_factory=list)

    def add(self, outcome: BatchOutcome) -> None:
        if outcome.success:
            self.indexed += 1
        else:
            self.failed += 1
        self.outcomes.append(outcome)

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[BatchOutcome]) -> "IndexStats":
        stats = cls()
        for outcome in outcomes:
            stats.add(outcome)
        return stats


class Indexer:
    """Coordinates classification, embedding and persistence of files."""

    def __init__(
        self,
        embedder: ModalityEmbedder,
        store: SQLiteVectorStore,
        *,
        scanner: FolderScanner | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.scanner = scanner or FolderScanner()

    def index_one(self, descriptor: FileDescriptor) -> IndexRecord:
        """Embed and store a single file; raises on any failure."""
        modality = classify_file(descriptor)
        if modality is None:
            raise UnsupportedTypeError(descriptor.name, descriptor.declared_type)

        path = resolve_locator(descriptor.locator)
        embedding = self.embedder.embed(descriptor, modality)

        try:
            record = IndexRecord(
                id=make_record_id(path),
                path=str(path),
                modality=modality,
                embedding=embedding,
                indexed_at=datetime.now(timezone.utc),
            )
            return self.store.upsert(record)
        except OmniFindError:
            raise
        except Exception as exc:
            raise ProcessingError("indexer", f"Failed to store {path}", exc) from exc

    def index_batch(
        self,
        descriptors: Sequence[FileDescriptor],
        progress: BatchProgress | None = None,
    ) -> list[BatchOutcome]:
        """Index descriptors one at a time; a failure never stops the batch."""
        outcomes: list[BatchOutcome] = []
        total = len(descriptors)

        for processed, descriptor in enumerate(descriptors, start=1):
            try:
                LOGGER.info(f"Processing: {descriptor.name}")
                record = self.index_one(descriptor)
                outcomes.append(BatchOutcome.ok(descriptor, record.id))
            except Exception as e:
                LOGGER.error(f"Failed to process {descriptor.locator}: {e}")
                outcomes.append(BatchOutcome.failed(descriptor, e))

            if progress is not None:
                progress(processed, total)

        return outcomes

    def collect(
        self, paths: Sequence[Path], scan_progress: ScanProgress | None = None
    ) -> list[FileDescriptor]:
        """Expand directories into their supported files; keep plain files as given."""
        descriptors: list[FileDescriptor] = []
        for path in paths:
            if path.is_dir():
                descriptors.extend(self.scanner.scan(path, scan_progress))
            else:
                descriptors.append(FileDescriptor.from_path(path))
        return descriptors

    def index_paths(
        self,
        paths: Sequence[Path],
        progress: BatchProgress | None = None,
        scan_progress: ScanProgress | None = None,
    ) -> IndexStats:
        """Index every supported file found under the given paths."""
        descriptors = self.collect(paths, scan_progress)
        if not descriptors:
            LOGGER.warning("No supported files found")
            return IndexStats()
        return IndexStats.from_outcomes(self.index_batch(descriptors, progress))

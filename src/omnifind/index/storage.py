"""SQLite-backed vector store for file embeddings."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Sequence

import numpy as np

from omnifind.errors import DimensionMismatchError, NotInitializedError
from omnifind.models import IndexRecord, Modality, SearchResult
from omnifind.utils.vectors import as_vector

LOGGER = logging.getLogger(__name__)

DEFAULT_DISTANCE_THRESHOLD = 0.5
DEFAULT_SEARCH_LIMIT = 20

_COLUMNS = "id, path, modality, embedding, indexed_at"


class SQLiteVectorStore:
    """Persistence layer for `IndexRecord` rows and Euclidean search over them.

    Records keep the position of their first insertion; upserting an existing id
    only swaps its embedding and timestamp.
    """

    def __init__(self, db_path: Path, *, dimension: int) -> None:
        self.db_path = Path(db_path)
        self.dimension = dimension
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(
            self.db_path, check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        try:
            self._ensure_schema()
        except Exception:
            self.close()
            raise

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotInitializedError("Database not initialized")
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self.connection
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS items (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    path TEXT NOT NULL,
                    modality TEXT NOT NULL CHECK (modality IN ('text', 'image', 'video')),
                    embedding BLOB NOT NULL,
                    indexed_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_path ON items(path)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS store_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            row = conn.execute(
                "SELECT value FROM store_meta WHERE key = 'dimension'"
            ).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO store_meta(key, value) VALUES ('dimension', ?)",
                    (str(self.dimension),),
                )
            elif int(row["value"]) != self.dimension:
                raise DimensionMismatchError(int(row["value"]), self.dimension)

    def _check_vector(self, values: Sequence[float] | np.ndarray) -> np.ndarray:
        vector = as_vector(values)
        if vector.shape[0] != self.dimension:
            raise DimensionMismatchError(self.dimension, int(vector.shape[0]))
        return vector

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> IndexRecord:
        return IndexRecord(
            id=row["id"],
            path=row["path"],
            modality=Modality(row["modality"]),
            embedding=np.frombuffer(row["embedding"], dtype="float32").copy(),
            indexed_at=datetime.fromisoformat(row["indexed_at"]),
        )

    def upsert(self, record: IndexRecord) -> IndexRecord:
        """Insert ``record`` or replace the embedding of the row with its id."""
        vector = self._check_vector(record.embedding)
        blob = sqlite3.Binary(vector.tobytes())
        indexed_at = record.indexed_at.isoformat()

        with self.transaction() as conn:
            existing = conn.execute(
                "SELECT seq FROM items WHERE id = ?", (record.id,)
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE items SET embedding = ?, indexed_at = ? WHERE id = ?",
                    (blob, indexed_at, record.id),
                )
                LOGGER.debug("Updated %s (%s)", record.id, record.path)
            else:
                conn.execute(
                    """
                    INSERT INTO items(id, path, modality, embedding, indexed_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (record.id, record.path, Modality(record.modality).value, blob, indexed_at),
                )
                LOGGER.debug("Inserted %s (%s)", record.id, record.path)
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM items WHERE id = ?", (record.id,)
            ).fetchone()
        return self._row_to_record(row)

    def search(
        self,
        embedding: Sequence[float] | np.ndarray,
        *,
        limit: int = DEFAULT_SEARCH_LIMIT,
        threshold: float = DEFAULT_DISTANCE_THRESHOLD,
    ) -> List[SearchResult]:
        """Return records within ``threshold`` Euclidean distance, closest first."""
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        query = self._check_vector(embedding)

        with self._lock:
            rows = self.connection.execute(
                f"SELECT {_COLUMNS} FROM items ORDER BY seq"
            ).fetchall()

        if not rows:
            return []

        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        distances = np.linalg.norm(embeddings - query, axis=1)
        within = np.flatnonzero(distances <= threshold)
        # Stable sort keeps insertion order for equal distances
        ranked = within[np.argsort(distances[within], kind="stable")][:limit]

        results: List[SearchResult] = []
        for idx in ranked:
            distance = float(distances[idx])
            results.append(
                SearchResult.from_record(
                    self._row_to_record(rows[idx]),
                    score=max(0.0, 1.0 - distance / threshold),
                    distance=distance,
                )
            )
        return results

    def get(self, record_id: str) -> IndexRecord | None:
        with self._lock:
            row = self.connection.execute(
                f"SELECT {_COLUMNS} FROM items WHERE id = ?", (record_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def list_all(self) -> List[IndexRecord]:
        """Return every stored record in insertion order."""
        with self._lock:
            rows = self.connection.execute(
                f"SELECT {_COLUMNS} FROM items ORDER BY seq"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._lock:
            return int(self.connection.execute("SELECT COUNT(*) FROM items").fetchone()[0])

    def delete(self, record_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM items WHERE id = ?", (record_id,))
        return cursor.rowcount > 0

    def delete_by_path(self, path: str) -> int:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM items WHERE path = ?", (str(path),))
        return cursor.rowcount

    def remove_missing_files(self) -> int:
        """Remove records whose files no longer exist."""
        with self.transaction() as conn:
            rows = conn.execute("SELECT id, path FROM items").fetchall()
            missing = [row for row in rows if not Path(row["path"]).exists()]
            for row in missing:
                conn.execute("DELETE FROM items WHERE id = ?", (row["id"],))
        return len(missing)

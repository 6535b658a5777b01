"""FastAPI application exposing search and indexing over HTTP."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from omnifind.config import AppConfig
from omnifind.embedding.modality import ModalityEmbedder
from omnifind.errors import OmniFindError
from omnifind.index.indexer import Indexer
from omnifind.index.search import Searcher
from omnifind.index.storage import SQLiteVectorStore
from omnifind.models import IndexRecord, SearchResult

LOGGER = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 100

app = FastAPI(title="OmniFind API", version="0.1.0")
_embedder_lock = threading.Lock()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    db: Path | None = None
    limit: int = 20
    threshold: float | None = Field(default=None, gt=0)


class IndexPayload(BaseModel):
    paths: List[str]
    db: str | None = None
    chunk_chars: int | None = None
    frame_count: int | None = None


class ItemView(BaseModel):
    id: str
    path: str
    modality: str
    indexed_at: datetime
    score: float | None = None

    @classmethod
    def from_record(cls, record: IndexRecord | SearchResult) -> "ItemView":
        return cls(
            id=record.id,
            path=record.path,
            modality=record.modality.value,
            indexed_at=record.indexed_at,
            score=getattr(record, "score", None),
        )


def _resolve_db_path(db: Path | None) -> Path:
    if db is None:
        db = getattr(app.state, "db_path", None)
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _validate_index_path(raw: str) -> Path | None:
    """Resolve a requested path and confine it to the user's home directory."""
    clean_path = raw.strip().replace("\r", "").replace("\n", "")
    if not clean_path:
        return None
    if "\0" in clean_path:
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

    # Canonical paths so symlinks cannot escape the allowed base
    safe_base = os.path.realpath(str(Path.home())) + os.sep
    real_path = os.path.realpath(os.path.expanduser(clean_path))
    if not (real_path + os.sep).startswith(safe_base):
        raise HTTPException(status_code=403, detail="Access denied: path is outside allowed directory")

    validated = Path(real_path)
    if not validated.exists():
        raise HTTPException(status_code=404, detail="Path not found: %s" % clean_path)
    return validated


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/search")
async def search_files(payload: SearchPayload) -> dict[str, List[ItemView]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    limit = max(1, min(payload.limit, MAX_SEARCH_LIMIT))

    resolved_db = _resolve_db_path(payload.db)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Index some files first.",
        )

    config = AppConfig(db_path=resolved_db)
    threshold = payload.threshold
    if threshold is None:
        threshold = config.distance_threshold

    try:
        results = await asyncio.to_thread(
            _run_search, query, config, resolved_db, limit, threshold
        )
    except OmniFindError as exc:
        LOGGER.error("Search failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"results": [ItemView.from_record(result) for result in results]}


def _get_embedder() -> ModalityEmbedder:
    """Load the encoders on first use and share them across requests."""
    with _embedder_lock:
        embedder = getattr(app.state, "embedder", None)
        if embedder is None:
            LOGGER.info("Loading embedding models")
            embedder = ModalityEmbedder.from_config(AppConfig())
            app.state.embedder = embedder
    return embedder


def _run_search(
    query: str, config: AppConfig, resolved_db: Path, limit: int, threshold: float
) -> List[SearchResult]:
    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    try:
        return Searcher(_get_embedder(), store).search(query, limit=limit, threshold=threshold)
    finally:
        store.close()


@app.get("/items")
async def list_items(db: Path | None = None) -> dict[str, Any]:
    """List every indexed file."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        return {"items": [], "count": 0}

    store = SQLiteVectorStore(resolved_db, dimension=AppConfig().dimension)
    try:
        records = store.list_all()
    finally:
        store.close()
    return {"items": [ItemView.from_record(record) for record in records], "count": len(records)}


@app.delete("/items/cleanup")
async def cleanup_missing_files(db: Path | None = None) -> dict[str, Any]:
    """Remove records whose files no longer exist on disk."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        raise HTTPException(status_code=404, detail="Database not found")

    store = SQLiteVectorStore(resolved_db, dimension=AppConfig().dimension)
    try:
        removed_count = store.remove_missing_files()
    finally:
        store.close()
    return {"status": "ok", "removed_count": removed_count}


@app.delete("/items/{record_id}")
async def delete_item(record_id: str, db: Path | None = None) -> dict[str, Any]:
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        raise HTTPException(status_code=404, detail="Database not found")

    store = SQLiteVectorStore(resolved_db, dimension=AppConfig().dimension)
    try:
        record = store.get(record_id)
        if record is not None:
            store.delete(record_id)
    finally:
        store.close()

    if record is None:
        raise HTTPException(status_code=404, detail=f"Item {record_id} not found")
    return {"status": "ok", "deleted_id": record_id, "path": record.path}


def _run_index_job(paths: List[Path], config: AppConfig, resolved_db: Path) -> dict[str, Any]:
    embedder = _get_embedder().with_config(config)
    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    try:
        stats = Indexer(embedder, store).index_paths(paths)
    finally:
        store.close()
        embedder.close()

    return {
        "indexed": stats.indexed,
        "failed": stats.failed,
        "failures": [
            {"path": outcome.descriptor.locator, "error": outcome.error}
            for outcome in stats.outcomes
            if not outcome.success
        ],
    }


@app.post("/index")
async def index_files(payload: IndexPayload) -> dict[str, Any]:
    if not payload.paths:
        raise HTTPException(status_code=400, detail="No path provided")

    defaults = AppConfig()
    resolved_db = _resolve_db_path(Path(payload.db) if payload.db is not None else None)
    config = AppConfig(
        db_path=resolved_db,
        chunk_chars=payload.chunk_chars or defaults.chunk_chars,
        frame_count=payload.frame_count or defaults.frame_count,
    )
    _ensure_db_parent(resolved_db)

    resolved_paths = []
    for raw in payload.paths:
        try:
            validated = _validate_index_path(raw)
        except (ValueError, OSError) as e:
            LOGGER.error("Invalid path '%s': %s", raw, e)
            raise HTTPException(status_code=400, detail="Invalid path: %s" % raw)
        if validated is not None:
            resolved_paths.append(validated)

    if not resolved_paths:
        raise HTTPException(status_code=400, detail="No path provided")

    try:
        stats = await asyncio.to_thread(_run_index_job, resolved_paths, config, resolved_db)
    except Exception as exc:  # pragma: no cover - surfaced to the client
        LOGGER.exception("Indexing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {"status": "ok", "db": str(resolved_db), "stats": stats}

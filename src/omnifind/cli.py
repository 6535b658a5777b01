"""Command line interface for OmniFind."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from omnifind.config import AppConfig
from omnifind.embedding.modality import ModalityEmbedder
from omnifind.errors import OmniFindError
from omnifind.index.indexer import Indexer
from omnifind.index.search import Searcher
from omnifind.index.storage import SQLiteVectorStore
from omnifind.utils.files import get_file_info
from omnifind.web.app import app as web_app


console = Console()
app = typer.Typer(help="OmniFind - local semantic search for text, images and video")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _config(db: Path | None) -> AppConfig:
    return AppConfig(db_path=db if db is not None else AppConfig().db_path)


@app.command()
def index(
    inputs: List[Path] = typer.Argument(
        ..., help="Files or folders to index.", resolve_path=True
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    chunk_chars: int = typer.Option(AppConfig().chunk_chars, help="Maximum text chunk length"),
    frames: int = typer.Option(AppConfig().frame_count, help="Frames sampled per video"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index files, or every supported file inside folders."""
    _setup_logging(verbose)
    config = _config(db)
    config.chunk_chars = chunk_chars
    config.frame_count = frames

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    embedder = ModalityEmbedder.from_config(config)
    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    indexer = Indexer(embedder, store)

    console.print(f"Indexing into [bold]{resolved_db}[/bold]...")
    try:
        descriptors = indexer.collect(inputs)
        if not descriptors:
            console.print("[yellow]No supported files found.[/yellow]")
            return

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Embedding", total=len(descriptors))
            outcomes = indexer.index_batch(
                descriptors,
                lambda done, total: progress.update(task, completed=done),
            )
    finally:
        store.close()
        embedder.close()

    failures = [outcome for outcome in outcomes if not outcome.success]
    console.print(f"Indexed: {len(outcomes) - len(failures)}, failed: {len(failures)}")
    for outcome in failures:
        console.print(f"[red]{outcome.descriptor.name}[/red]: {outcome.error}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    limit: int = typer.Option(AppConfig().search_limit, help="Number of results to display"),
    threshold: float = typer.Option(
        AppConfig().distance_threshold, help="Maximum Euclidean distance of a match"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search."""
    _setup_logging(verbose)
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    embedder = ModalityEmbedder.from_config(config)
    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    searcher = Searcher(embedder, store)

    try:
        results = searcher.search(query, limit=limit, threshold=threshold)
    except OmniFindError as exc:
        console.print(f"[red]Search failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Type")
    table.add_column("File")
    table.add_column("Preview")

    for result in results:
        info = get_file_info(result.path)
        preview = (info.preview or info.error or "").replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.modality.value, result.path, preview[:120])

    console.print(table)


@app.command("list")
def list_items(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Show every indexed file."""
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing indexed yet.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    try:
        records = store.list_all()
    finally:
        store.close()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("File")
    table.add_column("Indexed at")
    for record in records:
        table.add_row(
            record.id[:12], record.modality.value, record.path, record.indexed_at.isoformat()
        )
    console.print(table)
    console.print(f"{len(records)} indexed files.")


@app.command()
def delete(
    record_id: str = typer.Argument(..., help="Record id (see `omnifind list`)"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove one record from the index."""
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    try:
        deleted = store.delete(record_id)
    finally:
        store.close()

    if not deleted:
        console.print(f"[yellow]No record with id {record_id}.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"Deleted {record_id}.")


@app.command()
def prune(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove records whose files no longer exist on disk."""
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to prune.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db, dimension=config.dimension)
    try:
        removed = store.remove_missing_files()
    finally:
        store.close()
    console.print(f"Removed {removed} orphaned records.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional extra
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    resolved_db = _config(db).resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, searches might fail.[/yellow]")

    web_app.state.db_path = resolved_db
    console.print(f"Starting API on http://{host}:{port} (database: {resolved_db})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":  # pragma: no cover
    app()

"""Command line interface for PatternFinder."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from patternfinder.config import AppConfig
from patternfinder.errors import OperationCancelled, PatternFinderError
from patternfinder.service import build_service

console = Console()
app = typer.Typer(help="PatternFinder - semantic search over a golden reference repository")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(
    *,
    root: Optional[Path] = None,
    collection: Optional[str] = None,
    extensions: Optional[List[str]] = None,
    store: Optional[str] = None,
    db: Optional[Path] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    dimension: Optional[int] = None,
) -> AppConfig:
    """Environment configuration with command line overrides applied."""
    config = AppConfig.from_env()
    if root is not None:
        config.root_path = root
    if collection:
        config.collection = collection
    if extensions:
        config.extensions = tuple(extensions)
    if store:
        config.store = store  # type: ignore[assignment]
    if db is not None:
        config.db_path = db
    if provider:
        config.provider = provider  # type: ignore[assignment]
    if model:
        config.model_name = model
    if dimension is not None:
        config.dimension = dimension
    return config


def _print_matches(matches) -> None:
    if not matches:
        console.print("[yellow]No matching golden patterns found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Path")
    table.add_column("Snippet")

    for match in matches:
        snippet = match.text.replace("\n", " ")
        table.add_row(f"{match.score:.3f}", match.path, snippet[:180])

    console.print(table)


@app.command()
def index(
    root: Optional[Path] = typer.Argument(
        None, help="Repository to index (defaults to RAG_REPO_PATH).", resolve_path=True
    ),
    collection: Optional[str] = typer.Option(None, help="Destination collection"),
    ext: Optional[List[str]] = typer.Option(None, "--ext", help="File extension to include"),
    store: Optional[str] = typer.Option(None, help="Vector store: qdrant or sqlite"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    provider: Optional[str] = typer.Option(None, help="Embedding provider: openai or local"),
    model: Optional[str] = typer.Option(None, help="Embedding model name"),
    dimension: Optional[int] = typer.Option(None, help="Embedding dimension"),
    batch_size: Optional[int] = typer.Option(None, help="Files per upsert batch"),
    workers: Optional[int] = typer.Option(None, help="Batches embedded concurrently"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop at the first failing file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index a reference repository into the vector store."""
    _setup_logging(verbose)
    config = _load_config(
        root=root,
        collection=collection,
        extensions=ext,
        store=store,
        db=db,
        provider=provider,
        model=model,
        dimension=dimension,
    )
    if batch_size is not None:
        config.batch_size = batch_size
    if workers is not None:
        config.max_workers = workers
    if fail_fast:
        config.fail_fast = True

    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        service = build_service(config)
        console.print(
            f"Indexing [bold]{config.root_path}[/bold] into [bold]{config.collection}[/bold]..."
        )
        stats = service.index_golden_repo(cancel)
    except OperationCancelled as exc:
        committed = exc.stats.batches_committed if exc.stats is not None else 0
        console.print(f"[yellow]Cancelled after {committed} committed batches.[/yellow]")
        raise typer.Exit(code=130)
    except PatternFinderError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, previous)

    console.print(
        f"Scanned: {stats.scanned}, indexed: {stats.indexed}, "
        f"skipped: {stats.skipped}, failed: {stats.failed}"
    )
    for failure in stats.failures:
        console.print(f"[yellow]  {failure.path}: {failure.error}[/yellow]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Natural language description of the pattern"),
    top_k: int = typer.Option(5, "--top-k", "-k", help="Number of results to display"),
    collection: Optional[str] = typer.Option(None, help="Collection to search"),
    store: Optional[str] = typer.Option(None, help="Vector store: qdrant or sqlite"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    provider: Optional[str] = typer.Option(None, help="Embedding provider: openai or local"),
    model: Optional[str] = typer.Option(None, help="Embedding model name"),
    dimension: Optional[int] = typer.Option(None, help="Embedding dimension"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search the golden repository for matching patterns."""
    _setup_logging(verbose)
    config = _load_config(
        collection=collection, store=store, db=db, provider=provider, model=model, dimension=dimension
    )
    try:
        matches = build_service(config).search_patterns(query, max_results=top_k)
    except PatternFinderError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    _print_matches(matches)


@app.command()
def similar(
    code_file: Path = typer.Argument(..., help="File with the code to modernize", exists=True),
    top_k: int = typer.Option(3, "--top-k", "-k", help="Number of results to display"),
    collection: Optional[str] = typer.Option(None, help="Collection to search"),
    store: Optional[str] = typer.Option(None, help="Vector store: qdrant or sqlite"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Find golden patterns similar to the code in a file."""
    _setup_logging(verbose)
    config = _load_config(collection=collection, store=store, db=db)
    code = code_file.read_text(encoding="utf-8", errors="replace")
    try:
        matches = build_service(config).similar_to_code(code, max_results=top_k)
    except PatternFinderError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    _print_matches(matches)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from patternfinder.web.app import app as web_app

    console.print(f"Starting PatternFinder API on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")


if __name__ == "__main__":
    app()

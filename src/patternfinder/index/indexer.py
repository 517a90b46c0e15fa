"""Corpus indexing pipeline."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from patternfinder.embedding.base import EmbeddingClient
from patternfinder.errors import (
    ConfigurationError,
    EmbeddingRejectedError,
    FileReadError,
    IndexingError,
    OperationCancelled,
    ProviderError,
)
from patternfinder.index.storage import VectorStore
from patternfinder.models import Document, normalize_path
from patternfinder.utils.files import batched, iter_corpus_paths, read_content

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass(slots=True)
class FileFailure:
    path: str
    batch_index: int
    error: str


@dataclass(slots=True)
class IndexStats:
    scanned: int = 0
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    batches_committed: int = 0
    failures: list[FileFailure] = field(default_factory=list)

    def merge(self, other: "IndexStats") -> None:
        self.indexed += other.indexed
        self.skipped += other.skipped
        self.failed += other.failed
        self.batches_committed += other.batches_committed
        self.failures.extend(other.failures)

    def as_dict(self) -> dict:
        return asdict(self)


def _check_cancel(cancel: threading.Event | None, stats: IndexStats | None = None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Indexing cancelled", stats=stats)


def _is_recoverable(exc: Exception) -> bool:
    """Per-file failures that should not stop the run."""
    if isinstance(exc, (FileReadError, EmbeddingRejectedError)):
        return True
    return isinstance(exc, ProviderError) and exc.transient


class Indexer:
    """Scans a corpus, embeds each file and upserts documents batch by batch.

    Documents are keyed by their normalized relative path, so re-running over an
    unchanged tree rewrites the same records instead of adding new ones.
    With ``max_workers > 1`` batches are embedded concurrently, never more than
    ``max_workers`` at a time.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        dimension: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = 1,
        fail_fast: bool = False,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        if max_workers < 1:
            raise ValueError("max_workers must be positive")
        self.embedder = embedder
        self.store = store
        self.dimension = dimension
        self.batch_size = batch_size
        self.max_workers = max_workers
        self.fail_fast = fail_fast

    def index(
        self,
        root: Path,
        extensions: Iterable[str],
        collection: str,
        cancel: threading.Event | None = None,
    ) -> IndexStats:
        """Index every allow-listed file under ``root`` into ``collection``."""
        root = Path(root)
        if not root.is_dir():
            raise ConfigurationError(f"Corpus root not found: {root}")
        self.store.ensure_collection(collection, self.dimension)

        files = list(iter_corpus_paths(root, extensions))
        stats = IndexStats(scanned=len(files))
        if not files:
            LOGGER.warning("No matching files found under %s", root)
            return stats

        batches = list(batched(files, self.batch_size))
        LOGGER.info(
            "Indexing %d files from %s into %s (%d batches)",
            len(files),
            root,
            collection,
            len(batches),
        )

        if self.max_workers == 1:
            for batch_index, batch in enumerate(batches):
                _check_cancel(cancel, stats)
                try:
                    result = self._index_batch(root, collection, batch_index, batch, cancel)
                except OperationCancelled as exc:
                    raise OperationCancelled(str(exc), stats=stats) from exc
                stats.merge(result)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                for start in range(0, len(batches), self.max_workers):
                    _check_cancel(cancel, stats)
                    futures = [
                        pool.submit(
                            self._index_batch,
                            root,
                            collection,
                            batch_index,
                            batches[batch_index],
                            cancel,
                        )
                        for batch_index in range(start, min(start + self.max_workers, len(batches)))
                    ]
                    self._collect(futures, stats)

        LOGGER.info(
            "Indexed %d, skipped %d, failed %d of %d files",
            stats.indexed,
            stats.skipped,
            stats.failed,
            stats.scanned,
        )
        return stats

    def _collect(self, futures: Sequence[Future], stats: IndexStats) -> None:
        wait(futures)
        error: BaseException | None = None
        for future in futures:
            exc = future.exception()
            if exc is None:
                stats.merge(future.result())
            elif error is None:
                error = exc
        if isinstance(error, OperationCancelled):
            raise OperationCancelled(str(error), stats=stats) from error
        if error is not None:
            raise error

    def _index_batch(
        self,
        root: Path,
        collection: str,
        batch_index: int,
        paths: Sequence[Path],
        cancel: threading.Event | None,
    ) -> IndexStats:
        result = IndexStats()
        documents: list[Document] = []
        base_offset = batch_index * self.batch_size

        for position, path in enumerate(paths):
            _check_cancel(cancel)
            relative = normalize_path(root, path)
            try:
                data = read_content(path)
                if not data:
                    LOGGER.debug("Skipping empty file %s", relative)
                    result.skipped += 1
                    continue
                vector = self.embedder.generate_embedding(data, self.dimension)
            except (FileReadError, ProviderError) as exc:
                if self.fail_fast or not _is_recoverable(exc):
                    raise IndexingError(
                        str(exc),
                        batch_index=batch_index,
                        offset=base_offset + position,
                        path=relative,
                    ) from exc
                LOGGER.warning("Skipping %s: %s", relative, exc)
                result.failed += 1
                result.failures.append(FileFailure(relative, batch_index, str(exc)))
                continue

            documents.append(Document.create(relative, data, vector))

        if documents:
            try:
                self.store.upsert(collection, documents)
            except ProviderError as exc:
                raise IndexingError(
                    f"Upsert of {len(documents)} documents failed: {exc}",
                    batch_index=batch_index,
                    offset=base_offset,
                ) from exc
            result.indexed += len(documents)
            result.batches_committed += 1

        LOGGER.info(
            "Batch %d: %d indexed, %d skipped, %d failed",
            batch_index,
            result.indexed,
            result.skipped,
            result.failed,
        )
        return result

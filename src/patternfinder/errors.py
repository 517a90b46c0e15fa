"""Exception hierarchy for PatternFinder."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class PatternFinderError(Exception):
    """Base exception for all PatternFinder operations."""


class ConfigurationError(PatternFinderError):
    """Missing credentials or endpoints, or an embedding dimension mismatch.

    Always fatal and never retried.
    """


class ProviderError(PatternFinderError):
    """Failure talking to the embedding provider or the vector store."""

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class EmbeddingRejectedError(ProviderError):
    """The embedding model refused the content (unsupported or oversized)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, transient=False)


class FileReadError(PatternFinderError):
    """A single corpus file could not be read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to read {path}: {reason}")
        self.path = str(path)


class IndexingError(PatternFinderError):
    """An indexing run stopped; carries enough context to resume by hand."""

    def __init__(
        self,
        message: str,
        *,
        batch_index: int,
        offset: int,
        path: str | None = None,
    ) -> None:
        location = f"batch {batch_index} (offset {offset})"
        if path is not None:
            location = f"{path} in {location}"
        super().__init__(f"{message} [{location}]")
        self.batch_index = batch_index
        self.offset = offset
        self.path = path


class OperationCancelled(PatternFinderError):
    """Raised when a cancel signal stops indexing or search."""

    def __init__(self, message: str = "Operation cancelled", *, stats: Any = None) -> None:
        super().__init__(message)
        self.stats = stats

"""PatternFinder: semantic search over a golden reference repository."""

from patternfinder.errors import (
    ConfigurationError,
    EmbeddingRejectedError,
    FileReadError,
    IndexingError,
    OperationCancelled,
    PatternFinderError,
    ProviderError,
)
from patternfinder.index.indexer import Indexer, IndexStats
from patternfinder.index.search import Searcher
from patternfinder.models import Document, Match, document_key

__all__ = [
    "ConfigurationError",
    "Document",
    "EmbeddingRejectedError",
    "FileReadError",
    "IndexStats",
    "Indexer",
    "IndexingError",
    "Match",
    "OperationCancelled",
    "PatternFinderError",
    "ProviderError",
    "Searcher",
    "document_key",
]

__version__ = "0.1.0"

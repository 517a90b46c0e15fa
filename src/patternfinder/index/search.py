"""Semantic search interface."""

from __future__ import annotations

import threading
from itertools import islice
from typing import Iterable, Iterator

from patternfinder.embedding.base import EmbeddingClient, check_dimension
from patternfinder.errors import OperationCancelled
from patternfinder.index.storage import VectorStore
from patternfinder.models import Document, Match

SIMILAR_CODE_PROMPT = "Pattern similar to this code: {code}"


class Searcher:
    """High-level API to query the vector store."""

    def __init__(self, embedder: EmbeddingClient, store: VectorStore, *, dimension: int) -> None:
        self.embedder = embedder
        self.store = store
        self.dimension = dimension

    def search(
        self,
        collection: str,
        query: bytes | str,
        max_results: int = 5,
        cancel: threading.Event | None = None,
    ) -> Iterator[Match]:
        """Embed ``query`` and lazily yield matches in the store's ranking order.

        The embedding and the store request happen before this returns, so
        configuration and provider errors are raised here rather than on
        first iteration.
        """
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
            raise ValueError("max_results must be a positive integer")
        if cancel is not None and cancel.is_set():
            raise OperationCancelled("Search cancelled")

        vector = check_dimension(
            self.embedder.generate_embedding(query, self.dimension), self.dimension
        )
        results = self.store.search(collection, vector, max_results)
        return self._iter_matches(results, max_results, cancel)

    @staticmethod
    def _iter_matches(
        results: Iterable[tuple[Document, float]],
        limit: int,
        cancel: threading.Event | None,
    ) -> Iterator[Match]:
        for document, score in islice(results, limit):
            if cancel is not None and cancel.is_set():
                raise OperationCancelled("Search cancelled")
            yield Match(path=document.path, score=float(score), data=document.data)

    def similar_to_code(
        self,
        collection: str,
        code: str,
        max_results: int = 3,
        cancel: threading.Event | None = None,
    ) -> Iterator[Match]:
        """Find stored patterns that resemble a piece of code."""
        return self.search(
            collection, SIMILAR_CODE_PROMPT.format(code=code), max_results, cancel
        )

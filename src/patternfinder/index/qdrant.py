"""Vector store backed by a Qdrant server."""

from __future__ import annotations

import base64
import logging
from typing import Callable, Iterator, Sequence, TypeVar

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.http import models as qdrant_models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance

from patternfinder.errors import ConfigurationError, ProviderError
from patternfinder.models import Document
from patternfinder.utils.retry import DEFAULT_DELAYS, with_retries

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class QdrantVectorStore:
    """Stores documents as Qdrant points keyed by their path-derived id."""

    def __init__(
        self,
        *,
        url: str,
        api_key: str | None = None,
        timeout: int = 30,
        retry_delays: tuple[float, ...] = DEFAULT_DELAYS,
        client: QdrantClient | None = None,
    ) -> None:
        if client is None:
            if not url:
                raise ConfigurationError("QDRANT_ENDPOINT is required")
            client = QdrantClient(url=url, api_key=api_key, timeout=timeout)
        self.client = client
        self.retry_delays = retry_delays

    def _call(self, fn: Callable[[], T]) -> T:
        def attempt() -> T:
            try:
                return fn()
            except UnexpectedResponse as exc:
                raise ProviderError(
                    f"Qdrant returned {exc.status_code}: {exc.reason_phrase}",
                    transient=exc.status_code is not None and exc.status_code >= 500,
                ) from exc
            except ResponseHandlingException as exc:
                raise ProviderError(f"Qdrant request failed: {exc}", transient=True) from exc

        return with_retries(attempt, delays=self.retry_delays)

    def ensure_collection(self, name: str, dimension: int) -> None:
        if not self._call(lambda: self.client.collection_exists(name)):
            LOGGER.info("Creating Qdrant collection %s (dimension %d)", name, dimension)
            self._call(
                lambda: self.client.create_collection(
                    collection_name=name,
                    vectors_config=qdrant_models.VectorParams(
                        size=dimension, distance=Distance.COSINE
                    ),
                )
            )
            return

        size = self._vector_size(name)
        if size is not None and size != dimension:
            raise ConfigurationError(
                f"Collection {name!r} stores {size}-dimensional vectors, configured {dimension}"
            )

    def _vector_size(self, name: str) -> int | None:
        info = self._call(lambda: self.client.get_collection(name))
        return getattr(info.config.params.vectors, "size", None)

    def upsert(self, collection: str, documents: Sequence[Document]) -> None:
        """Write the whole batch with a single upsert request."""
        points = [
            qdrant_models.PointStruct(
                id=document.id,
                vector=np.asarray(document.embedding, dtype="float32").tolist(),
                payload={
                    "path": document.path,
                    "data": base64.b64encode(document.data).decode("ascii"),
                },
            )
            for document in documents
        ]
        self._call(
            lambda: self.client.upsert(collection_name=collection, points=points, wait=True)
        )

    def search(
        self, collection: str, vector: np.ndarray, top_k: int
    ) -> Iterator[tuple[Document, float]]:
        if not self._call(lambda: self.client.collection_exists(collection)):
            return iter(())
        size = self._vector_size(collection)
        if size is not None and size != len(vector):
            raise ConfigurationError(
                f"Embedding dimension mismatch: collection {collection!r} stores "
                f"{size}-dimensional vectors, query has {len(vector)}"
            )

        response = self._call(
            lambda: self.client.query_points(
                collection_name=collection,
                query=np.asarray(vector, dtype="float32").tolist(),
                limit=top_k,
                with_payload=True,
                with_vectors=False,
            )
        )
        return (self._to_result(point) for point in response.points)

    @staticmethod
    def _to_result(point: qdrant_models.ScoredPoint) -> tuple[Document, float]:
        payload = point.payload or {}
        document = Document(
            id=str(point.id),
            path=payload.get("path", ""),
            data=base64.b64decode(payload.get("data", "")),
            embedding=(),
        )
        return document, float(point.score)

    def count(self, collection: str) -> int:
        if not self._call(lambda: self.client.collection_exists(collection)):
            return 0
        return self._call(lambda: self.client.count(collection_name=collection, exact=True)).count

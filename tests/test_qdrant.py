"""Tests for the Qdrant vector store adapter."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock

import numpy as np
import pytest
from qdrant_client import QdrantClient
from qdrant_client.http import models as qdrant_models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from conftest import DIMENSION, FakeEmbedder
from patternfinder.errors import ConfigurationError, ProviderError
from patternfinder.index.qdrant import QdrantVectorStore
from patternfinder.index.search import Searcher
from patternfinder.index.storage import VectorStore
from patternfinder.models import Document


def _unexpected(status: int) -> UnexpectedResponse:
    return UnexpectedResponse(
        status_code=status, reason_phrase="error", content=b"", headers=None
    )


def _set_vector_size(client: MagicMock, size: int) -> None:
    client.get_collection.return_value.config.params.vectors = qdrant_models.VectorParams(
        size=size, distance=qdrant_models.Distance.COSINE
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(client: MagicMock) -> QdrantVectorStore:
    return QdrantVectorStore(url="http://localhost:6333", client=client, retry_delays=(0.0,))


class TestEnsureCollection:
    def test_creates_missing_collection(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = False

        store.ensure_collection("golden_patterns", 1536)

        client.create_collection.assert_called_once()
        kwargs = client.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "golden_patterns"
        assert kwargs["vectors_config"].size == 1536
        assert kwargs["vectors_config"].distance == qdrant_models.Distance.COSINE

    def test_existing_collection_with_same_dimension(
        self, store: QdrantVectorStore, client: MagicMock
    ) -> None:
        client.collection_exists.return_value = True
        client.get_collection.return_value.config.params.vectors = qdrant_models.VectorParams(
            size=1536, distance=qdrant_models.Distance.COSINE
        )

        store.ensure_collection("golden_patterns", 1536)

        client.create_collection.assert_not_called()

    def test_existing_collection_with_other_dimension(
        self, store: QdrantVectorStore, client: MagicMock
    ) -> None:
        client.collection_exists.return_value = True
        client.get_collection.return_value.config.params.vectors = qdrant_models.VectorParams(
            size=768, distance=qdrant_models.Distance.COSINE
        )

        with pytest.raises(ConfigurationError, match="768"):
            store.ensure_collection("golden_patterns", 1536)


class TestUpsert:
    def test_single_request_per_batch(self, store: QdrantVectorStore, client: MagicMock) -> None:
        documents = [
            Document.create("a.md", b"hello", [1.0, 0.0]),
            Document.create("src/B.cs", b"class B {}", [0.0, 1.0]),
        ]

        store.upsert("golden", documents)

        client.upsert.assert_called_once()
        kwargs = client.upsert.call_args.kwargs
        assert kwargs["collection_name"] == "golden"
        assert kwargs["wait"] is True
        points = kwargs["points"]
        assert [p.id for p in points] == [documents[0].id, documents[1].id]
        assert points[0].payload["path"] == "a.md"
        assert base64.b64decode(points[0].payload["data"]) == b"hello"
        assert points[1].vector == [0.0, 1.0]

    def test_server_error_is_retried(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.upsert.side_effect = [_unexpected(503), None]

        store.upsert("golden", [Document.create("a.md", b"x", [1.0])])

        assert client.upsert.call_count == 2

    def test_client_error_is_permanent(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.upsert.side_effect = _unexpected(400)

        with pytest.raises(ProviderError) as excinfo:
            store.upsert("golden", [Document.create("a.md", b"x", [1.0])])

        assert excinfo.value.transient is False
        assert client.upsert.call_count == 1

    def test_transport_error_is_transient(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.upsert.side_effect = ResponseHandlingException(ConnectionError("refused"))

        with pytest.raises(ProviderError) as excinfo:
            store.upsert("golden", [Document.create("a.md", b"x", [1.0])])

        assert excinfo.value.transient is True
        assert client.upsert.call_count == 2


class TestSearch:
    def test_maps_scored_points(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = True
        _set_vector_size(client, 2)
        client.query_points.return_value = qdrant_models.QueryResponse(
            points=[
                qdrant_models.ScoredPoint(
                    id="5b0f8c2e-7d7a-4c55-9a57-6f1e0b4c3a21",
                    version=1,
                    score=0.91,
                    payload={"path": "a.md", "data": base64.b64encode(b"hello").decode()},
                ),
                qdrant_models.ScoredPoint(
                    id="6b0f8c2e-7d7a-4c55-9a57-6f1e0b4c3a21",
                    version=1,
                    score=0.42,
                    payload={"path": "b.md", "data": base64.b64encode(b"bye").decode()},
                ),
            ]
        )

        results = list(store.search("golden", np.array([1.0, 0.0]), top_k=2))

        assert [(doc.path, doc.data, score) for doc, score in results] == [
            ("a.md", b"hello", 0.91),
            ("b.md", b"bye", 0.42),
        ]
        kwargs = client.query_points.call_args.kwargs
        assert kwargs["limit"] == 2
        assert kwargs["query"] == [1.0, 0.0]

    def test_absent_collection(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = False

        assert list(store.search("missing", np.array([1.0]), top_k=3)) == []
        client.query_points.assert_not_called()

    def test_query_dimension_mismatch(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = True
        _set_vector_size(client, 4)

        with pytest.raises(ConfigurationError, match="dimension mismatch"):
            store.search("golden", np.zeros(8, dtype="float32"), top_k=3)
        client.query_points.assert_not_called()

    def test_searcher_reports_mismatch_against_local_qdrant(self) -> None:
        store = QdrantVectorStore(url="", client=QdrantClient(":memory:"))
        store.ensure_collection("golden", 4)
        store.upsert("golden", [Document.create("a.md", b"hello", [1.0, 0.0, 0.0, 0.0])])

        searcher = Searcher(FakeEmbedder(), store, dimension=DIMENSION)

        with pytest.raises(ConfigurationError):
            searcher.search("golden", "hi", 3)


class TestCount:
    def test_count(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = True
        client.count.return_value = qdrant_models.CountResult(count=7)

        assert store.count("golden") == 7
        client.count.assert_called_once_with(collection_name="golden", exact=True)

    def test_count_absent(self, store: QdrantVectorStore, client: MagicMock) -> None:
        client.collection_exists.return_value = False
        assert store.count("golden") == 0


def test_satisfies_protocol(store: QdrantVectorStore) -> None:
    assert isinstance(store, VectorStore)


def test_requires_endpoint() -> None:
    with pytest.raises(ConfigurationError):
        QdrantVectorStore(url="")

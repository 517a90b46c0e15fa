"""Shared fixtures: in-memory stand-ins for the embedding client and vector store."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from patternfinder.errors import ConfigurationError, ProviderError
from patternfinder.models import Document

DIMENSION = 8


class FakeEmbedder:
    """Deterministic bag-of-bytes embeddings."""

    def __init__(self, fail_on: Callable[[bytes], Exception | None] | None = None) -> None:
        self.calls: list[bytes] = []
        self.fail_on = fail_on

    def generate_embedding(self, content, dimension: int) -> np.ndarray:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        self.calls.append(data)
        if self.fail_on is not None:
            error = self.fail_on(data)
            if error is not None:
                raise error
        vector = np.zeros(dimension, dtype="float32")
        for byte in data:
            vector[byte % dimension] += 1.0
        return vector


class InMemoryStore:
    """Dictionary-backed vector store with cosine ranking."""

    def __init__(self) -> None:
        self.collections: dict[str, dict] = {}
        self.upsert_calls: list[list[Document]] = []
        self.fail_upsert_on_call: int | None = None
        self.after_upsert: Callable[[int], None] | None = None

    def ensure_collection(self, name: str, dimension: int) -> None:
        existing = self.collections.setdefault(name, {"dimension": dimension, "docs": {}})
        if existing["dimension"] != dimension:
            raise ConfigurationError("dimension mismatch")

    def upsert(self, collection: str, documents) -> None:
        call_number = len(self.upsert_calls) + 1
        if self.fail_upsert_on_call == call_number:
            self.upsert_calls.append([])
            raise ProviderError("store unavailable", transient=True)
        self.upsert_calls.append(list(documents))
        docs = self.collections[collection]["docs"]
        for document in documents:
            docs[document.id] = document
        if self.after_upsert is not None:
            self.after_upsert(call_number)

    def search(self, collection: str, vector, top_k: int):
        if collection not in self.collections:
            return iter(())
        query = np.asarray(vector, dtype="float32")
        scored = []
        for document in self.collections[collection]["docs"].values():
            embedding = np.asarray(document.embedding, dtype="float32")
            denom = np.linalg.norm(embedding) * np.linalg.norm(query)
            score = float(embedding @ query / denom) if denom else 0.0
            scored.append((document, score))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return iter(scored[:top_k])

    def count(self, collection: str) -> int:
        if collection not in self.collections:
            return 0
        return len(self.collections[collection]["docs"])

    def documents(self, collection: str) -> dict[str, Document]:
        return {doc.path: doc for doc in self.collections[collection]["docs"].values()}


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """Small golden repository with docs, code, an empty file and noise."""
    root = tmp_path / "golden"
    (root / "src" / "Orders").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "README.md").write_text("# Golden service\nHow things are done.")
    (root / "docs" / "handlers.md").write_text("Command handlers validate input.")
    (root / "src" / "Orders" / "CreateOrder.cs").write_text("public sealed class CreateOrder {}")
    (root / "src" / "Empty.cs").write_bytes(b"")
    (root / "src" / "notes.txt").write_text("not indexed")
    return root

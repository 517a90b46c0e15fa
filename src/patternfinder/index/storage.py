"""Vector store contract and the local SQLite implementation."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Protocol, Sequence, runtime_checkable

import numpy as np

from patternfinder.errors import ConfigurationError, ProviderError
from patternfinder.models import Document


@runtime_checkable
class VectorStore(Protocol):
    """Keyed collections supporting bulk upsert and kNN search."""

    def ensure_collection(self, name: str, dimension: int) -> None:
        ...

    def upsert(self, collection: str, documents: Sequence[Document]) -> None:
        ...

    def search(
        self, collection: str, vector: np.ndarray, top_k: int
    ) -> Iterator[tuple[Document, float]]:
        ...

    def count(self, collection: str) -> int:
        ...


class SQLiteVectorStore:
    """Single-file persistence for embedded documents, scored with cosine similarity."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    dimension INTEGER NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    path TEXT NOT NULL,
                    data BLOB NOT NULL,
                    embedding BLOB NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (collection, id),
                    FOREIGN KEY(collection) REFERENCES collections(name) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_documents_collection
                    ON documents(collection)
                """
            )

    def _dimension(self, conn: sqlite3.Connection, name: str) -> int | None:
        row = conn.execute(
            "SELECT dimension FROM collections WHERE name = ?", (name,)
        ).fetchone()
        return None if row is None else int(row["dimension"])

    def ensure_collection(self, name: str, dimension: int) -> None:
        with self.transaction() as conn:
            existing = self._dimension(conn, name)
            if existing is None:
                conn.execute(
                    "INSERT INTO collections(name, dimension) VALUES (?, ?)", (name, dimension)
                )
            elif existing != dimension:
                raise ConfigurationError(
                    f"Collection {name!r} stores {existing}-dimensional vectors, "
                    f"configured {dimension}"
                )

    def upsert(self, collection: str, documents: Sequence[Document]) -> None:
        """Insert or replace a batch of documents in one transaction."""
        try:
            self._upsert(collection, documents)
        except sqlite3.Error as exc:
            raise ProviderError(f"SQLite upsert into {collection!r} failed: {exc}") from exc

    def _upsert(self, collection: str, documents: Sequence[Document]) -> None:
        with self.transaction() as conn:
            dimension = self._dimension(conn, collection)
            if dimension is None:
                raise ProviderError(f"Collection {collection!r} does not exist")
            rows = []
            for document in documents:
                document.validate(dimension)
                rows.append(
                    (
                        collection,
                        document.id,
                        document.path,
                        sqlite3.Binary(document.data),
                        sqlite3.Binary(np.asarray(document.embedding, dtype="float32").tobytes()),
                    )
                )
            conn.executemany(
                """
                INSERT INTO documents(collection, id, path, data, embedding)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET
                    path = excluded.path,
                    data = excluded.data,
                    embedding = excluded.embedding,
                    updated_at = CURRENT_TIMESTAMP
                """,
                rows,
            )

    def search(
        self, collection: str, vector: np.ndarray, top_k: int
    ) -> Iterator[tuple[Document, float]]:
        query = np.asarray(vector, dtype="float32")
        with self._lock:
            dimension = self._dimension(self._conn, collection)
            rows = self._conn.execute(
                "SELECT id, path, data, embedding FROM documents WHERE collection = ?",
                (collection,),
            ).fetchall()

        if dimension is None or not rows:
            return iter(())
        if query.shape != (dimension,):
            raise ConfigurationError(
                f"Query vector has {query.size} values, collection {collection!r} "
                f"stores {dimension}"
            )

        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        norms = np.linalg.norm(embeddings, axis=1) * np.linalg.norm(query)
        scores = np.divide(
            embeddings @ query, norms, out=np.zeros(len(rows), dtype="float32"), where=norms > 0
        )

        if top_k < len(scores):
            top_indices = np.argpartition(scores, -top_k)[-top_k:]
            top_indices = top_indices[np.argsort(scores[top_indices])[::-1]]
        else:
            top_indices = np.argsort(scores)[::-1]

        return self._iter_results(rows, embeddings, scores, top_indices)

    @staticmethod
    def _iter_results(rows, embeddings, scores, indices) -> Iterator[tuple[Document, float]]:
        for idx in indices:
            row = rows[idx]
            document = Document(
                id=row["id"],
                path=row["path"],
                data=bytes(row["data"]),
                embedding=embeddings[idx],
            )
            yield document, float(scores[idx])

    def count(self, collection: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) AS n FROM documents WHERE collection = ?", (collection,)
            ).fetchone()
        return int(row["n"])

    def list_documents(self, collection: str) -> list[dict]:
        """List stored documents without their embeddings."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT id, path, length(data) AS size, updated_at
                FROM documents WHERE collection = ? ORDER BY path
                """,
                (collection,),
            ).fetchall()
        return [dict(row) for row in rows]

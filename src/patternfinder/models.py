"""Core PatternFinder data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Sequence

from patternfinder.errors import ConfigurationError

# Fixed namespace so that document keys are stable across runs and hosts.
DOCUMENT_NAMESPACE = uuid.UUID("5b0f8c2e-7d7a-4c55-9a57-6f1e0b4c3a21")


def normalize_path(root: Path, path: Path) -> str:
    """Return ``path`` relative to ``root`` using forward slashes."""
    relative = Path(path).relative_to(root)
    return relative.as_posix()


def document_key(path: str) -> str:
    """Derive the document key from a normalized relative path."""
    return str(uuid.uuid5(DOCUMENT_NAMESPACE, path))


@dataclass(slots=True)
class Document:
    """Embedded file content stored in a collection."""

    id: str
    path: str
    data: bytes
    embedding: Sequence[float]

    @classmethod
    def create(cls, path: str, data: bytes, embedding: Sequence[float]) -> "Document":
        return cls(id=document_key(path), path=path, data=data, embedding=embedding)

    def validate(self, dimension: int) -> None:
        if len(self.embedding) != dimension:
            raise ConfigurationError(
                f"Embedding for {self.path} has {len(self.embedding)} values, "
                f"expected {dimension}"
            )
        if not self.data:
            raise ValueError(f"Document {self.path} has no content")
        if PurePosixPath(self.path).is_absolute():
            raise ValueError(f"Document path must be relative: {self.path}")


@dataclass(slots=True, frozen=True)
class Match:
    """A single search hit, in the order the store ranked it."""

    path: str
    score: float
    data: bytes

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")

"""Embedding client contract shared by indexing and search."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from patternfinder.errors import ConfigurationError, EmbeddingRejectedError


@runtime_checkable
class EmbeddingClient(Protocol):
    """Anything that turns content into a fixed-length vector."""

    def generate_embedding(self, content: bytes | str, dimension: int) -> np.ndarray:
        ...


def content_to_text(content: bytes | str) -> str:
    """Decode content for text-only embedding models."""
    if isinstance(content, str):
        text = content
    else:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EmbeddingRejectedError(
                f"Content is not valid UTF-8 text (byte {exc.start})"
            ) from exc
    if not text:
        raise EmbeddingRejectedError("Cannot embed empty content")
    return text


def check_dimension(vector: Sequence[float] | np.ndarray, dimension: int) -> np.ndarray:
    """Return ``vector`` as float32, refusing any length other than ``dimension``."""
    array = np.asarray(vector, dtype="float32")
    if array.ndim != 1 or array.shape[0] != dimension:
        raise ConfigurationError(
            f"Embedding dimension mismatch: got {array.shape[-1] if array.ndim else 0}, "
            f"configured {dimension}"
        )
    return array

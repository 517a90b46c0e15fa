"""Utility helpers for working with corpus files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Sequence, TypeVar

from patternfinder.errors import FileReadError

T = TypeVar("T")


def normalize_extensions(extensions: Iterable[str]) -> frozenset[str]:
    """Lower-case extensions and make sure each has a leading dot."""
    normalized = set()
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.add(ext if ext.startswith(".") else f".{ext}")
    return frozenset(normalized)


def iter_corpus_paths(root: Path, extensions: Iterable[str]) -> Iterator[Path]:
    """Yield files under ``root`` whose extension is in the allow-list."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Corpus root not found: {root}")

    allowed = normalize_extensions(extensions)
    for item in sorted(root.rglob("*")):
        if item.is_file() and item.suffix.lower() in allowed:
            yield item


def read_content(path: Path) -> bytes:
    """Read raw file bytes."""
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileReadError(path, exc.strerror or str(exc)) from exc


def batched(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split ``items`` into lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])

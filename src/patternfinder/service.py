"""Golden-repository pattern service and its wiring from configuration."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, Sequence

from patternfinder.config import DEFAULT_COLLECTION, DEFAULT_EXTENSIONS, AppConfig
from patternfinder.embedding.base import EmbeddingClient
from patternfinder.embedding.encoder import EmbeddingConfig, EmbeddingModel
from patternfinder.embedding.openai_client import OpenAIEmbeddingClient
from patternfinder.errors import ConfigurationError
from patternfinder.index.indexer import DEFAULT_BATCH_SIZE, Indexer, IndexStats
from patternfinder.index.qdrant import QdrantVectorStore
from patternfinder.index.search import Searcher
from patternfinder.index.storage import SQLiteVectorStore, VectorStore
from patternfinder.models import Match

LOGGER = logging.getLogger(__name__)

SEPARATOR = "-" * 80


class PatternService:
    """Indexes one reference repository and answers pattern queries against it."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        root_path: Path,
        dimension: int,
        collection: str = DEFAULT_COLLECTION,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = 1,
        fail_fast: bool = False,
    ) -> None:
        self.root_path = Path(root_path)
        self.collection = collection
        self.extensions = tuple(extensions)
        self.store = store
        self.indexer = Indexer(
            embedder,
            store,
            dimension=dimension,
            batch_size=batch_size,
            max_workers=max_workers,
            fail_fast=fail_fast,
        )
        self.searcher = Searcher(embedder, store, dimension=dimension)

    def index_golden_repo(self, cancel: threading.Event | None = None) -> IndexStats:
        return self.indexer.index(self.root_path, self.extensions, self.collection, cancel)

    def search_patterns(
        self, query: str, max_results: int = 5, cancel: threading.Event | None = None
    ) -> list[Match]:
        return list(self.searcher.search(self.collection, query, max_results, cancel))

    def similar_to_code(
        self, code: str, max_results: int = 3, cancel: threading.Event | None = None
    ) -> list[Match]:
        return list(self.searcher.similar_to_code(self.collection, code, max_results, cancel))


def build_service(config: AppConfig) -> PatternService:
    """Wire concrete embedding and store adapters from ``config``."""
    config.validate()

    if config.provider == "local":
        model = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
        if model.dimension != config.dimension:
            raise ConfigurationError(
                f"Model {config.model_name} produces {model.dimension}-dimensional "
                f"embeddings, configured {config.dimension}"
            )
        embedder: EmbeddingClient = model
    else:
        embedder = OpenAIEmbeddingClient(
            config.openai_api_key,
            model=config.model_name,
            base_url=config.openai_base_url,
        )

    if config.store == "sqlite":
        db_path = config.resolve_db_path(Path.cwd())
        db_path.parent.mkdir(parents=True, exist_ok=True)
        store: VectorStore = SQLiteVectorStore(db_path)
    else:
        store = QdrantVectorStore(url=config.qdrant_endpoint, api_key=config.qdrant_api_key)

    LOGGER.debug(
        "Using %s embeddings (%s, %d dims) with %s store",
        config.provider,
        config.model_name,
        config.dimension,
        config.store,
    )
    return PatternService(
        embedder,
        store,
        root_path=config.root_path,
        dimension=config.dimension,
        collection=config.collection,
        extensions=config.extensions,
        batch_size=config.batch_size,
        max_workers=config.max_workers,
        fail_fast=config.fail_fast,
    )


def format_matches(
    matches: Sequence[Match],
    *,
    include_score: bool = True,
    header: str | None = None,
    empty_message: str = "No matching golden patterns found.",
) -> str:
    """Render matches as a plain-text report."""
    if not matches:
        return empty_message

    lines: list[str] = []
    if header:
        lines.append(header)
    for match in matches:
        lines.append(f"Path: {match.path}")
        if include_score:
            lines.append(f"Score: {match.score:.3f}")
            lines.append("Snippet:")
        lines.append(match.text)
        lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"

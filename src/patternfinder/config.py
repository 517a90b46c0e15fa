"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping

from patternfinder.embedding.encoder import DEFAULT_LOCAL_MODEL
from patternfinder.embedding.openai_client import DEFAULT_OPENAI_DIMENSION, DEFAULT_OPENAI_MODEL
from patternfinder.errors import ConfigurationError
from patternfinder.index.indexer import DEFAULT_BATCH_SIZE

DEFAULT_COLLECTION = "golden_patterns"
DEFAULT_EXTENSIONS = (".cs", ".md")
DEFAULT_QDRANT_ENDPOINT = "http://localhost:6333"
DEFAULT_LOCAL_DIMENSION = 768


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class AppConfig:
    root_path: Path = Path("/rag-service")
    collection: str = DEFAULT_COLLECTION
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    provider: Literal["openai", "local"] = "openai"
    model_name: str = DEFAULT_OPENAI_MODEL
    dimension: int = DEFAULT_OPENAI_DIMENSION
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    store: Literal["qdrant", "sqlite"] = "qdrant"
    qdrant_endpoint: str = DEFAULT_QDRANT_ENDPOINT
    qdrant_api_key: str | None = None
    db_path: Path = Path("data/patternfinder.db")
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: int = 1
    fail_fast: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        provider = env.get("PATTERNFINDER_PROVIDER") or defaults.provider
        if provider == "local":
            defaults.model_name = DEFAULT_LOCAL_MODEL
            defaults.dimension = DEFAULT_LOCAL_DIMENSION
        extensions = env.get("PATTERNFINDER_EXTENSIONS")
        return cls(
            root_path=Path(env.get("RAG_REPO_PATH") or defaults.root_path),
            collection=env.get("PATTERNFINDER_COLLECTION") or defaults.collection,
            extensions=(
                tuple(ext.strip() for ext in extensions.split(",") if ext.strip())
                if extensions
                else defaults.extensions
            ),
            provider=provider,  # type: ignore[arg-type]
            model_name=(
                env.get("PATTERNFINDER_MODEL")
                or (env.get("OPENAI_EMBED_MODEL") if provider == "openai" else None)
                or defaults.model_name
            ),
            dimension=_env_int(env, "PATTERNFINDER_DIMENSION", defaults.dimension),
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_base_url=env.get("OPENAI_BASE_URL") or None,
            store=env.get("PATTERNFINDER_STORE") or defaults.store,  # type: ignore[arg-type]
            qdrant_endpoint=env.get("QDRANT_ENDPOINT") or defaults.qdrant_endpoint,
            qdrant_api_key=env.get("QDRANT_API_KEY") or None,
            db_path=Path(env.get("PATTERNFINDER_DB") or defaults.db_path),
            batch_size=_env_int(env, "PATTERNFINDER_BATCH_SIZE", defaults.batch_size),
            max_workers=_env_int(env, "PATTERNFINDER_WORKERS", defaults.max_workers),
            fail_fast=_env_flag(env, "PATTERNFINDER_FAIL_FAST"),
        )

    def validate(self) -> None:
        if self.provider not in ("openai", "local"):
            raise ConfigurationError(f"Unknown embedding provider: {self.provider!r}")
        if self.store not in ("qdrant", "sqlite"):
            raise ConfigurationError(f"Unknown vector store: {self.store!r}")
        if self.provider == "openai" and not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required")
        if self.store == "qdrant" and not self.qdrant_endpoint:
            raise ConfigurationError("QDRANT_ENDPOINT is required")
        for name in ("dimension", "batch_size", "max_workers"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive")

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

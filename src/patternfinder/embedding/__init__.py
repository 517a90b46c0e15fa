from patternfinder.embedding.base import EmbeddingClient, check_dimension, content_to_text

__all__ = ["EmbeddingClient", "check_dimension", "content_to_text"]

"""OpenAI embeddings API client."""

from __future__ import annotations

import logging

import numpy as np
import openai
from openai import OpenAI

from patternfinder.embedding.base import check_dimension, content_to_text
from patternfinder.errors import ConfigurationError, EmbeddingRejectedError, ProviderError
from patternfinder.utils.retry import DEFAULT_DELAYS, with_retries

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_OPENAI_DIMENSION = 1536

LOGGER = logging.getLogger(__name__)


class OpenAIEmbeddingClient:
    """Generate embeddings through the OpenAI API.

    Transient failures (timeouts, connection errors, rate limits and 5xx
    responses) are retried with back-off; everything else surfaces at once.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        timeout: float = 30.0,
        retry_delays: tuple[float, ...] = DEFAULT_DELAYS,
        client: OpenAI | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is required")
            client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.retry_delays = retry_delays
        self._client = client

    def _request(self, text: str, dimension: int) -> list[float]:
        kwargs = {}
        if self.model.startswith("text-embedding-3"):
            kwargs["dimensions"] = dimension
        try:
            response = self._client.embeddings.create(model=self.model, input=[text], **kwargs)
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as exc:
            raise ProviderError(f"OpenAI request failed: {exc}", transient=True) from exc
        except openai.BadRequestError as exc:
            raise EmbeddingRejectedError(f"OpenAI rejected the content: {exc}") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"OpenAI returned {exc.status_code}: {exc}",
                transient=exc.status_code >= 500,
            ) from exc
        return response.data[0].embedding

    def generate_embedding(self, content: bytes | str, dimension: int) -> np.ndarray:
        text = content_to_text(content)
        vector = with_retries(lambda: self._request(text, dimension), delays=self.retry_delays)
        return check_dimension(vector, dimension)

"""Ollama embedding client."""

import logging
import math

import httpx

from kb_relevance.config import (
    get_embedding_dim,
    get_embedding_model,
    get_ollama_timeout,
    get_ollama_url,
)
from kb_relevance.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


def normalize(vector: list[float]) -> list[float]:
    """Scale a vector to unit length. Zero vectors are rejected."""
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0.0:
        raise EmbeddingUnavailableError("Embedding backend returned a zero vector")
    return [v / norm for v in vector]


class OllamaEmbedder:
    """Generates unit-length embeddings via Ollama's /api/embed endpoint."""

    def __init__(
        self, http_client: httpx.AsyncClient | None = None, *, dim: int | None = None
    ) -> None:
        """Initialize with an optional HTTP client and expected dimension."""
        self._http = http_client
        self.dim = dim if dim is not None else get_embedding_dim()
        self._available: bool | None = None

    async def is_available(self) -> bool:
        """Check if Ollama is reachable. Only caches success, retries on failure."""
        if self._available is True:
            return True
        try:
            client = self._get_client()
            resp = await client.get(f"{get_ollama_url()}/api/tags", timeout=get_ollama_timeout())
            resp.raise_for_status()
            self._available = True
        except Exception:
            logger.warning("Ollama not available, embeddings disabled")
            self._available = None
        return self._available is True

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``. Raises EmbeddingUnavailableError if Ollama cannot answer."""
        if not await self.is_available():
            raise EmbeddingUnavailableError(f"Ollama unreachable at {get_ollama_url()}")
        try:
            client = self._get_client()
            resp = await client.post(
                f"{get_ollama_url()}/api/embed",
                json={"model": get_embedding_model(), "input": text},
                timeout=get_ollama_timeout(),
            )
            resp.raise_for_status()
            data = resp.json()
            # Ollama /api/embed returns {"embeddings": [[...]]}
            vector: list[float] = data["embeddings"][0]
        except Exception as e:
            logger.warning("Embedding generation failed", exc_info=True)
            self._available = None
            raise EmbeddingUnavailableError("Embedding generation failed") from e

        if len(vector) != self.dim:
            raise EmbeddingUnavailableError(
                f"Expected {self.dim}-dimensional embedding, got {len(vector)}"
            )
        return normalize(vector)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def close(self) -> None:
        """Close the HTTP client if open."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

"""Check that Ollama serves the embedding model at the configured dimension."""

import asyncio
import sys

from kb_relevance.config import get_embedding_dim, get_embedding_model, get_ollama_url
from kb_relevance.errors import EmbeddingUnavailableError
from kb_relevance.providers.ollama import OllamaEmbedder


async def _check() -> int:
    model = get_embedding_model()
    dim = get_embedding_dim()
    print(f"Embedding a probe with {model} at {get_ollama_url()} (expecting {dim} dims)...")

    embedder = OllamaEmbedder(dim=dim)
    try:
        if not await embedder.is_available():
            print("  Ollama is not running. Start it with: ollama serve")
            return 1
        vector = await embedder.embed("kb-relevance probe")
    except EmbeddingUnavailableError as e:
        print(f"  {e}")
        print(f"  Pull the model with: ollama pull {model}, or set KB_EMBEDDING_DIM")
        return 1
    finally:
        await embedder.close()

    print(f"  OK: {len(vector)}-dimensional unit vector")
    return 0


def main() -> None:
    """Exit non-zero when embeddings cannot be produced."""
    sys.exit(asyncio.run(_check()))


if __name__ == "__main__":
    main()

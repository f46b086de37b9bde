"""FastMCP server with lifespan management and tool registration."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from kb_relevance.config import (
    get_cache_ttl,
    get_db_path,
    get_embedding_dim,
    get_log_level,
    get_page_size,
)
from kb_relevance.db.connection import create_connection
from kb_relevance.engine.cache import ResultCache
from kb_relevance.engine.scorer import RelevanceScorer
from kb_relevance.providers.ollama import OllamaEmbedder
from kb_relevance.providers.similarity import EmbeddingSimilarityProvider
from kb_relevance.service import RelevanceEngine
from kb_relevance.store.item_store import ItemStore
from kb_relevance.store.vector_index import VectorIndex
from kb_relevance.tools.kb_add_item import register_kb_add_item
from kb_relevance.tools.kb_focus import register_kb_focus
from kb_relevance.tools.kb_review_link import register_kb_review_link
from kb_relevance.tools.kb_search import register_kb_search


def build_engine(
    store: ItemStore, provider: EmbeddingSimilarityProvider, cache: ResultCache | None = None
) -> RelevanceEngine:
    """Create the engine with a result cache and configured page size."""
    if cache is None:
        cache = ResultCache(ttl=get_cache_ttl())
    scorer = RelevanceScorer(cache, page_size=get_page_size())
    return RelevanceEngine(provider, store, scorer=scorer)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Manage database connection and embedding client lifecycle."""
    # Configure logging to stderr (stdout is MCP stdio transport)
    logging.basicConfig(
        level=getattr(logging, get_log_level()),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    db_path = get_db_path()
    logger.info("Opening database at %s", db_path)
    db = await create_connection(db_path, embedding_dim=get_embedding_dim())

    store = ItemStore(db)
    embedder = OllamaEmbedder()
    provider = EmbeddingSimilarityProvider(embedder, VectorIndex(db))
    engine = build_engine(store, provider)

    # Pre-check Ollama availability (non-blocking, just logs)
    if await embedder.is_available():
        logger.info("Ollama available, vector search enabled")
    else:
        logger.warning("Ollama unavailable, search and link suggestion will fail until it is up")

    try:
        yield {
            "db": db,
            "store": store,
            "embedder": embedder,
            "provider": provider,
            "engine": engine,
        }
    finally:
        await embedder.close()
        await db.close()
        logger.info("Database connection closed")


_INSTRUCTIONS = """\
This server ranks a personal knowledge base of notes, code, repositories and \
tasks.

- kb_search: find items by meaning and keywords. Every result explains why it \
ranked (similarity, matched terms, matched tags) and shows highlighted spans.
- kb_focus: list today's top open tasks, scored on deadline urgency, assigned \
priority and inactivity.
- kb_add_item: add an item. It is embedded and similar items are suggested as \
links.
- kb_review_link: accept or reject a suggested link. Rejected pairs are never \
suggested again.
"""


def create_server() -> FastMCP:
    """Create and configure the MCP server with all tools."""
    mcp = FastMCP(
        "kb-relevance",
        instructions=_INSTRUCTIONS,
        lifespan=lifespan,
    )

    register_kb_search(mcp)
    register_kb_focus(mcp)
    register_kb_add_item(mcp)
    register_kb_review_link(mcp)

    return mcp

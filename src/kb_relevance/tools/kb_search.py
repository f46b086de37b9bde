"""kb_search MCP tool: ranked, explained search."""

import logging
from datetime import datetime
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from kb_relevance.config import get_owner_id
from kb_relevance.errors import InputInvalidError, UpstreamUnavailableError
from kb_relevance.models.item import ItemKind
from kb_relevance.models.search import SearchFilters, SearchResponse
from kb_relevance.service import RelevanceEngine
from kb_relevance.tools.formatters import format_ranked_result, format_result_list

logger = logging.getLogger(__name__)


def format_search_response(response: SearchResponse) -> str:
    """Format ranked results with timing and degradation notes."""
    note_parts = [f"{response.query_time_ms:.0f} ms"]
    if response.from_cache:
        note_parts.append("cached")
    if response.degraded:
        note_parts.append("result cache unavailable")
    entries = [format_ranked_result(r) for r in response.items]
    return format_result_list(
        entries, note=", ".join(note_parts), total_count=response.total_count
    )


def register_kb_search(mcp: FastMCP) -> None:
    """Register the kb_search tool with the MCP server."""

    @mcp.tool()
    async def kb_search(
        query: Annotated[str, Field(description="Search query (natural language or keywords)")],
        kinds: Annotated[
            list[ItemKind] | None,
            Field(description="Restrict to item kinds (note, code, task, repository)"),
        ] = None,
        tags: Annotated[
            list[str] | None, Field(description="Filter by tags (all must match)")
        ] = None,
        created_after: Annotated[
            datetime | None, Field(description="Only items created at or after this time")
        ] = None,
        created_before: Annotated[
            datetime | None, Field(description="Only items created at or before this time")
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Search notes, code, repositories and tasks by meaning and keywords.

        Results are ranked by vector similarity plus exact term and tag matches,
        and each result says why it ranked where it did.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")
        engine: RelevanceEngine = ctx.lifespan_context["engine"]

        filters = SearchFilters(
            kinds=kinds, tags=tags, created_after=created_after, created_before=created_before
        )
        try:
            response = await engine.search(get_owner_id(), query, filters)
        except InputInvalidError as e:
            return f"Error: {e}"
        except UpstreamUnavailableError as e:
            return f"Error: search unavailable ({e})"

        return format_search_response(response)

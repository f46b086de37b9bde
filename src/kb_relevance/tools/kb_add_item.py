"""kb_add_item MCP tool: store an item, index it and suggest links."""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field, ValidationError

from kb_relevance.config import get_owner_id
from kb_relevance.errors import InputInvalidError, UpstreamUnavailableError
from kb_relevance.models.item import ItemKind, KnowledgeItem, TaskPriority, TaskStatus, parse_item
from kb_relevance.models.link import ContextLink
from kb_relevance.providers.similarity import EmbeddingSimilarityProvider
from kb_relevance.service import RelevanceEngine
from kb_relevance.store.item_store import ItemStore
from kb_relevance.tools.formatters import format_item_header, format_item_meta, format_link

logger = logging.getLogger(__name__)


def describe_validation_error(error: ValidationError) -> str:
    """First validation problem as "message (field)"."""
    first = error.errors()[0]
    loc = ".".join(str(part) for part in first["loc"])
    return f"{first['msg']} ({loc})" if loc else first["msg"]


def format_add_result(
    item: KnowledgeItem,
    links: list[ContextLink],
    targets: dict[str, KnowledgeItem],
    note: str | None = None,
) -> str:
    """Format the stored item plus any persisted link suggestions."""
    lines = [f"Stored {format_item_header(item)}"]
    meta = format_item_meta(item)
    if meta:
        lines.append(f"  {meta}")
    if note:
        lines.append(f"  Note: {note}")
    if links:
        lines.append("")
        lines.append("Suggested links (accept or reject with kb_review_link):")
        for link in links:
            lines.append(f"  {format_link(link, targets.get(link.other_end(item.id)))}")
    return "\n".join(lines)


async def index_and_link(
    item: KnowledgeItem,
    store: ItemStore,
    provider: EmbeddingSimilarityProvider,
    engine: RelevanceEngine,
) -> tuple[list[ContextLink], str | None]:
    """Embed a stored item and persist link suggestions for it.

    Returns the saved links and a note when indexing was not possible.
    """
    engine.invalidate_cache(item.owner_id)
    try:
        vector = await provider.index_item(item.id, item.embedding_text)
        suggestions = await engine.suggest_links(item, vector)
    except (UpstreamUnavailableError, InputInvalidError) as e:
        logger.warning("Could not index item %s: %s", item.id, e)
        return [], "Item not indexed for search or linking yet"
    return await store.save_suggestions(suggestions), None


def register_kb_add_item(mcp: FastMCP) -> None:
    """Register the kb_add_item tool with the MCP server."""

    @mcp.tool()
    async def kb_add_item(
        kind: Annotated[ItemKind, Field(description="note, code, task or repository")],
        title: Annotated[str, Field(description="Short title")],
        content: Annotated[str, Field(description="Body text, code or description")] = "",
        tags: Annotated[list[str] | None, Field(description="Tags for the item")] = None,
        deadline: Annotated[datetime | None, Field(description="Task deadline")] = None,
        priority: Annotated[TaskPriority | None, Field(description="Task priority")] = None,
        status: Annotated[TaskStatus | None, Field(description="Task status")] = None,
        language: Annotated[str | None, Field(description="Code language")] = None,
        path: Annotated[str | None, Field(description="Code file path")] = None,
        url: Annotated[str | None, Field(description="Repository URL")] = None,
        ctx: Context | None = None,
    ) -> str:
        """Add a note, code snippet, task or repository and suggest related items.

        Kind-specific fields (deadline/priority/status for tasks, language/path
        for code, url for repositories) are rejected on other kinds.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")
        lifespan = ctx.lifespan_context
        store: ItemStore = lifespan["store"]
        provider: EmbeddingSimilarityProvider = lifespan["provider"]
        engine: RelevanceEngine = lifespan["engine"]

        now = datetime.now(UTC)
        data: dict[str, object] = {
            "id": await store.next_item_id(),
            "owner_id": get_owner_id(),
            "kind": kind.value,
            "title": title,
            "content": content,
            "tags": tags or [],
            "created_at": now,
            "updated_at": now,
        }
        extras = {
            "deadline": deadline,
            "priority": priority,
            "status": status,
            "language": language,
            "path": path,
            "url": url,
        }
        data.update({k: v for k, v in extras.items() if v is not None})

        try:
            item = parse_item(data)
        except ValidationError as e:
            return f"Error: {describe_validation_error(e)}"

        await store.save_item(item)
        links, note = await index_and_link(item, store, provider, engine)
        others = [link.other_end(item.id) for link in links]
        targets = {t.id: t for t in await store.fetch_items(others)}
        return format_add_result(item, links, targets, note)

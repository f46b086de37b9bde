"""kb_review_link MCP tool: accept or reject a suggested link."""

from typing import Annotated, Literal

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from kb_relevance.config import get_owner_id
from kb_relevance.errors import InputInvalidError
from kb_relevance.store.item_store import ItemStore
from kb_relevance.tools.formatters import format_link


def register_kb_review_link(mcp: FastMCP) -> None:
    """Register the kb_review_link tool with the MCP server."""

    @mcp.tool()
    async def kb_review_link(
        link_id: Annotated[str, Field(description="Link ID, e.g. lk-00003")],
        action: Annotated[Literal["accept", "reject"], Field(description="accept or reject")],
        ctx: Context | None = None,
    ) -> str:
        """Accept or reject a suggested link.

        Accepted links connect both items. Rejected pairs are never suggested again.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")
        store: ItemStore = ctx.lifespan_context["store"]
        owner_id = get_owner_id()

        try:
            if action == "accept":
                link = await store.accept_link(owner_id, link_id)
            else:
                link = await store.reject_link(owner_id, link_id)
        except InputInvalidError as e:
            return f"Error: {e}"

        verb = "Accepted" if action == "accept" else "Rejected"
        return f"{verb} {format_link(link)}"

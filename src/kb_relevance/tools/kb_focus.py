"""kb_focus MCP tool: today's top tasks."""

from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from kb_relevance.config import get_owner_id
from kb_relevance.errors import InputInvalidError, UpstreamUnavailableError
from kb_relevance.service import RelevanceEngine
from kb_relevance.tools.formatters import format_focus


def register_kb_focus(mcp: FastMCP) -> None:
    """Register the kb_focus tool with the MCP server."""

    @mcp.tool()
    async def kb_focus(
        focus_count: Annotated[
            int | None,
            Field(description="How many tasks to return (default 3)", ge=1, le=20),
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """List the open tasks to focus on today.

        Tasks are scored on deadline urgency, assigned priority and time since
        last activity; each entry lists the factors that put it there.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")
        engine: RelevanceEngine = ctx.lifespan_context["engine"]

        try:
            response = await engine.daily_focus(get_owner_id(), focus_count)
        except InputInvalidError as e:
            return f"Error: {e}"
        except UpstreamUnavailableError as e:
            return f"Error: focus unavailable ({e})"

        return format_focus(response.priorities, response.generated_at)

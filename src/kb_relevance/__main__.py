"""Entry point for the kb-relevance MCP server."""

from kb_relevance.server import create_server


def main() -> None:
    """Run the kb-relevance MCP server."""
    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()

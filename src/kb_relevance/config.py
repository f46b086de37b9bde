"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_db_path() -> Path:
    """Return the database file path from KB_DB_PATH."""
    raw = os.environ.get("KB_DB_PATH", "~/.local/share/kb_relevance/knowledge.db")
    return Path(raw).expanduser()


def get_owner_id() -> str:
    """Return the owner used by the single-user MCP server from KB_OWNER_ID."""
    return os.environ.get("KB_OWNER_ID", "local")


def get_ollama_url() -> str:
    """Return the Ollama API URL from KB_OLLAMA_URL."""
    return os.environ.get("KB_OLLAMA_URL", "http://localhost:11434")


def get_embedding_model() -> str:
    """Return the embedding model name from KB_EMBEDDING_MODEL."""
    return os.environ.get("KB_EMBEDDING_MODEL", "qwen3-embedding:0.6b")


def get_ollama_timeout() -> float:
    """Return the Ollama timeout in seconds from KB_OLLAMA_TIMEOUT."""
    return float(os.environ.get("KB_OLLAMA_TIMEOUT", "10.0"))


def get_embedding_dim() -> int:
    """Return the embedding vector dimensions from KB_EMBEDDING_DIM."""
    return int(os.environ.get("KB_EMBEDDING_DIM", "1024"))


def get_log_level() -> str:
    """Return the logging level from KB_LOG_LEVEL."""
    return os.environ.get("KB_LOG_LEVEL", "WARNING")


def get_cache_ttl() -> float:
    """Return the search result cache TTL in seconds from KB_CACHE_TTL."""
    return float(os.environ.get("KB_CACHE_TTL", "300"))


def get_page_size() -> int:
    """Return the search page size from KB_PAGE_SIZE."""
    return int(os.environ.get("KB_PAGE_SIZE", "20"))


def get_focus_count() -> int:
    """Return the default number of daily focus tasks from KB_FOCUS_COUNT."""
    return int(os.environ.get("KB_FOCUS_COUNT", "3"))


def get_search_timeout() -> float:
    """Return the search pipeline budget in seconds from KB_SEARCH_TIMEOUT."""
    return float(os.environ.get("KB_SEARCH_TIMEOUT", "2.0"))


def get_focus_timeout() -> float:
    """Return the daily focus pipeline budget in seconds from KB_FOCUS_TIMEOUT."""
    return float(os.environ.get("KB_FOCUS_TIMEOUT", "3.0"))


def get_link_timeout() -> float:
    """Return the link suggestion pipeline budget in seconds from KB_LINK_TIMEOUT."""
    return float(os.environ.get("KB_LINK_TIMEOUT", "2.0"))


def get_link_similarity_floor() -> float:
    """Return the minimum vector similarity for link candidates from KB_LINK_SIMILARITY_FLOOR."""
    return float(os.environ.get("KB_LINK_SIMILARITY_FLOOR", "0.7"))

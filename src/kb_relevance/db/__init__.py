"""Database connection and schema management."""

from kb_relevance.db.backend import Cursor, Database, Row
from kb_relevance.db.sqlite_backend import SQLiteBackend

__all__ = ["Cursor", "Database", "Row", "SQLiteBackend"]

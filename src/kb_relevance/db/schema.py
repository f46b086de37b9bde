"""DDL for the item, link and vector tables."""

from kb_relevance.db.backend import Database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    status TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_owner ON items(owner_id);
CREATE INDEX IF NOT EXISTS idx_items_owner_kind ON items(owner_id, kind);

-- Case-folded tag names, one row per tag, for exact filter matches
CREATE TABLE IF NOT EXISTS item_tags (
    item_id TEXT NOT NULL,
    name TEXT NOT NULL,
    PRIMARY KEY (item_id, name)
);

CREATE INDEX IF NOT EXISTS idx_item_tags_name ON item_tags(name);

-- No foreign keys: links outlive deleted items as 'broken'
CREATE TABLE IF NOT EXISTS links (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    source_id TEXT NOT NULL,
    target_id TEXT NOT NULL,
    link_type TEXT NOT NULL,
    confidence REAL NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_links_source ON links(owner_id, source_id);
CREATE INDEX IF NOT EXISTS idx_links_target ON links(owner_id, target_id);

CREATE TABLE IF NOT EXISTS item_id_seq (
    next_id INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS link_id_seq (
    next_id INTEGER NOT NULL DEFAULT 1
);
"""

INIT_SEQ_SQL = """
INSERT INTO item_id_seq (next_id)
SELECT 1 WHERE NOT EXISTS (SELECT 1 FROM item_id_seq);
INSERT INTO link_id_seq (next_id)
SELECT 1 WHERE NOT EXISTS (SELECT 1 FROM link_id_seq);
"""


def _vec_table_sql(dim: int) -> str:
    return f"""
CREATE VIRTUAL TABLE IF NOT EXISTS item_vec USING vec0(
    item_id TEXT PRIMARY KEY,
    embedding FLOAT[{dim}] distance_metric=cosine
);
"""


async def apply_schema(db: Database) -> None:
    """Apply the relational schema."""
    await db.executescript(SCHEMA_SQL)
    await db.executescript(INIT_SEQ_SQL)

    cursor = await db.execute("SELECT version FROM schema_version")
    row = await cursor.fetchone()
    if row is None:
        await db.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

    await db.commit()


async def apply_vec_schema(db: Database, dim: int = 1024) -> None:
    """Create the vec0 table (requires the sqlite-vec extension)."""
    await db.executescript(_vec_table_sql(dim))
    await db.commit()

"""
Item repository.

Items are written once and never updated. The primary key on ``item_key``
is the only concurrency control the table needs: a conflicting insert is
reported back to the caller as "already present" rather than raised.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from harvester.ingestion.schemas import ItemDraft
from harvester.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS items (
    item_key     TEXT PRIMARY KEY,
    source_id    TEXT NOT NULL,
    external_id  TEXT,
    created_at   TIMESTAMPTZ,
    url          TEXT,
    text         TEXT,
    thread_id    TEXT,
    fetched_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_items_source_created
    ON items(source_id, created_at DESC);
"""

_INSERT_SQL = """
INSERT INTO items (item_key, source_id, external_id, created_at, url, text, thread_id)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (item_key) DO NOTHING
RETURNING item_key
"""

_LATEST_FOR_SOURCE_SQL = """
SELECT * FROM items
WHERE source_id = $1
ORDER BY created_at DESC NULLS LAST
LIMIT 1
"""


@dataclass(frozen=True)
class Item:
    """A stored timeline item."""

    item_key: str
    source_id: str
    external_id: str | None
    created_at: datetime | None
    url: str | None
    text: str | None
    thread_id: str | None
    fetched_at: datetime | None = None


def _record_to_item(record) -> Item:
    """Convert an asyncpg Record to an Item."""
    return Item(
        item_key=record["item_key"],
        source_id=record["source_id"],
        external_id=record["external_id"],
        created_at=record["created_at"],
        url=record["url"],
        text=record["text"],
        thread_id=record["thread_id"],
        fetched_at=record["fetched_at"],
    )


class ItemRepository:
    """Insert and lookup operations for the items table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Items table ensured")

    async def insert(self, draft: ItemDraft) -> bool:
        """
        Insert a draft keyed by its ``item_key``.

        Returns:
            True if the row was new, False if the key already existed
        """
        row = await self._db.fetchrow(
            _INSERT_SQL,
            draft.item_key,
            draft.source_id,
            draft.external_id,
            draft.created_at,
            draft.url,
            draft.text,
            draft.thread_id,
        )
        return row is not None

    async def latest_for_source(self, source_id: str) -> Item | None:
        """Most recently published item of a source, if any."""
        row = await self._db.fetchrow(_LATEST_FOR_SOURCE_SQL, source_id)
        return _record_to_item(row) if row else None

    async def count_for_source(self, source_id: str) -> int:
        """Number of stored items for a source."""
        return await self._db.fetchval(
            "SELECT COUNT(*) FROM items WHERE source_id = $1", source_id
        )

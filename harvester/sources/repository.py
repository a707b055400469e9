"""Database repository for the sources table (the shared task queue)."""

import logging
from datetime import datetime

from harvester.sources.schemas import Source
from harvester.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id                TEXT PRIMARY KEY,
    finished          BOOLEAN NOT NULL DEFAULT FALSE,
    cursor            TEXT,
    next_eligible_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sources_next_eligible_at
    ON sources(next_eligible_at);
"""

_INSERT_SQL = """
INSERT INTO sources (id)
VALUES ($1)
ON CONFLICT (id) DO NOTHING
RETURNING id
"""

# Run inside one transaction: the advisory lock is released on commit.
_SET_LOCK_TIMEOUT_SQL = "SELECT set_config('lock_timeout', $1, true)"
_ADVISORY_LOCK_SQL = "SELECT pg_advisory_xact_lock($1)"

_SELECT_DUE_SQL = """
SELECT * FROM sources
WHERE next_eligible_at < NOW()
ORDER BY next_eligible_at
LIMIT 1
FOR UPDATE
"""

_BUMP_LEASE_SQL = """
UPDATE sources
SET next_eligible_at = NOW() + make_interval(secs => $2),
    updated_at = NOW()
WHERE id = $1
"""

_COMMIT_PROGRESS_SQL = """
UPDATE sources
SET finished = $2,
    cursor = $3,
    next_eligible_at = $4,
    updated_at = NOW()
WHERE id = $1
"""


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=record["id"],
        finished=record["finished"],
        cursor=record["cursor"],
        next_eligible_at=record["next_eligible_at"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """Queries and updates for the sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def add(self, source_id: str) -> bool:
        """Register a source in its initial backfilling state.

        Returns False if the source already existed; its state is left alone.
        """
        rows = await self._db.fetch(_INSERT_SQL, source_id)
        return bool(rows)

    async def claim_due(
        self,
        lock_key: int,
        lease_seconds: float,
        lock_timeout_ms: int,
    ) -> Source | None:
        """Select one due source and push its eligibility out by a lease.

        Serialized across workers by a transaction-scoped advisory lock.
        Returns the row as it was before the lease bump, or None when
        nothing is due. Lock wait timeouts surface as asyncpg's
        LockNotAvailableError.
        """
        async with self._db.transaction() as conn:
            await conn.execute(_SET_LOCK_TIMEOUT_SQL, f"{lock_timeout_ms}ms")
            await conn.execute(_ADVISORY_LOCK_SQL, lock_key)

            row = await conn.fetchrow(_SELECT_DUE_SQL)
            if row is None:
                return None

            await conn.execute(_BUMP_LEASE_SQL, row["id"], float(lease_seconds))
            return _record_to_source(row)

    async def commit_progress(
        self,
        source_id: str,
        finished: bool,
        cursor: str | None,
        next_eligible_at: datetime,
    ) -> bool:
        """Write the post-page pagination state in a single update.

        Returns True if a row was updated.
        """
        result = await self._db.execute(
            _COMMIT_PROGRESS_SQL,
            source_id,
            finished,
            cursor,
            next_eligible_at,
        )
        return result.endswith(" 1")

    async def list_sources(self, limit: int = 100, offset: int = 0) -> list[Source]:
        """List sources ordered by when they next become due."""
        rows = await self._db.fetch(
            """
            SELECT * FROM sources
            ORDER BY next_eligible_at, id
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [_record_to_source(r) for r in rows]

    async def count(self) -> int:
        """Count total sources in the table."""
        return await self._db.fetchval("SELECT COUNT(*) FROM sources")

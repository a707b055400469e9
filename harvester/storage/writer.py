"""
Idempotent persistence of a page of item drafts.

Delivery is at-least-once: the same page can be stored again after a crash
or a lease overrun. Re-storing is harmless because conflicting keys are
counted as duplicates, and the duplicate count is what tells the poll sweep
it has reached content it has already seen.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from harvester.errors import FatalStorageError
from harvester.ingestion.schemas import ItemDraft
from harvester.storage.database import STORAGE_ERRORS
from harvester.storage.repository import ItemRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StoreResult:
    """Outcome counts of storing one page."""

    inserted: int = 0
    duplicates: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.duplicates + self.skipped


class PersistenceWriter:
    """Writes drafts one by one, tolerating key conflicts."""

    def __init__(self, repository: ItemRepository) -> None:
        self._repo = repository

    async def store(self, drafts: Iterable[ItemDraft]) -> StoreResult:
        """
        Store a page of drafts.

        Drafts without a key are skipped. A key conflict is counted and
        processing moves on to the next draft.

        Raises:
            FatalStorageError: On any storage failure other than a conflict.
                Drafts written before the failure stay written.
        """
        inserted = duplicates = skipped = 0

        for draft in drafts:
            if not draft.has_key:
                skipped += 1
                logger.debug("Skipping edge without feedback id", source_id=draft.source_id)
                continue

            try:
                is_new = await self._repo.insert(draft)
            except STORAGE_ERRORS as e:
                raise FatalStorageError(
                    f"Failed to store item {draft.item_key}: {e}",
                    source_id=draft.source_id,
                ) from e

            if is_new:
                inserted += 1
                logger.debug(
                    "Item saved",
                    item_key=draft.item_key,
                    created_at=draft.created_at.isoformat() if draft.created_at else None,
                    text=(draft.text or "")[:30],
                )
            else:
                duplicates += 1
                logger.debug("Item already exists", item_key=draft.item_key)

        return StoreResult(inserted=inserted, duplicates=duplicates, skipped=skipped)

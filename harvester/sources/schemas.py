"""Data models for the sources module."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PaginationMode(str, Enum):
    """Which sweep a source is in."""

    BACKFILLING = "backfilling"
    POLLING = "polling"


@dataclass(frozen=True)
class Source:
    """A timeline to crawl, one row of the shared task queue.

    ``finished`` is false while the backfill sweep walks toward the oldest
    content and true once the source has settled into polling. ``cursor``
    is the opaque continuation token of the current sweep, or None at the
    top of the feed.
    """

    id: str
    finished: bool = False
    cursor: str | None = None
    next_eligible_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def mode(self) -> PaginationMode:
        return PaginationMode.POLLING if self.finished else PaginationMode.BACKFILLING

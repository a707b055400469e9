"""Data models for extracted timeline items."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ItemDraft:
    """
    One timeline edge mapped onto the items table.

    Every field may be missing. A draft without ``item_key`` is kept so the
    page's edge count stays intact, but it is never written.

    Attributes:
        item_key: Base64 feedback identifier, used as the primary key
        source_id: Owning source
        external_id: Leading digit run of the decoded feedback identifier
        created_at: When the item was published upstream (UTC)
        url: Permalink
        text: Message body
        thread_id: Story identifier the item belongs to
    """

    item_key: str | None
    source_id: str
    external_id: str | None = None
    created_at: datetime | None = None
    url: str | None = None
    text: str | None = None
    thread_id: str | None = None

    @property
    def has_key(self) -> bool:
        return bool(self.item_key)


@dataclass(frozen=True)
class ExtractedPage:
    """Drafts of one page in feed order plus the continuation token."""

    drafts: tuple[ItemDraft, ...] = field(default_factory=tuple)
    next_cursor: str | None = None

    @property
    def keyed_count(self) -> int:
        return sum(1 for d in self.drafts if d.has_key)

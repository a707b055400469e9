"""Timeline ingestion - fetching, payload recovery, and extraction."""

from harvester.ingestion.schemas import ExtractedPage, ItemDraft

__all__ = [
    "ExtractedPage",
    "ItemDraft",
]

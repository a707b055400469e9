"""
Mapping of a recovered timeline document onto item drafts.

The feed nests everything deeply and omits whole branches freely, so each
field is read with ``dig`` and a missing branch turns into None instead of
an exception.
"""

import base64
import binascii
import logging
import re
from datetime import datetime, timezone
from typing import Any

from harvester.ingestion.schemas import ExtractedPage, ItemDraft

logger = logging.getLogger(__name__)

EDGES_PATH = ("data", "node", "timeline_list_feed_units", "edges")

CREATED_AT_PATH = (
    "comet_sections", "context_layout", "story", "comet_sections",
    "metadata", 0, "story", "creation_time",
)
URL_PATH = ("comet_sections", "content", "story", "wwwURL")
TEXT_PATH = (
    "comet_sections", "content", "story", "comet_sections",
    "message", "story", "message", "text",
)
THREAD_ID_PATH = ("comet_sections", "content", "story", "id")

_DIGITS = re.compile(r"\d+")


def dig(value: Any, path: tuple[str | int, ...]) -> Any:
    """Follow a path of dict keys and list indexes, returning None on any gap."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(value, list) or not -len(value) <= step < len(value):
                return None
            value = value[step]
        else:
            if not isinstance(value, dict):
                return None
            value = value.get(step)
        if value is None:
            return None
    return value


def decode_external_id(item_key: str) -> str | None:
    """
    Pull the numeric identifier out of a base64 feedback identifier.

    ``ZmVlZGJhY2s6MTIzNDU2`` decodes to ``feedback:123456`` and yields
    ``"123456"``. Padding may be missing and URL-safe characters are
    accepted.
    """
    padded = item_key + "=" * (-len(item_key) % 4)
    try:
        decoded = base64.b64decode(padded, altchars=b"-_").decode(
            "utf-8", errors="replace"
        )
    except (binascii.Error, ValueError):
        logger.debug(f"Feedback id is not base64: {item_key!r}")
        return None

    match = _DIGITS.search(decoded)
    return match.group(0) if match else None


def _to_datetime(value: Any) -> datetime | None:
    """Convert an epoch-seconds creation time to an aware UTC datetime."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def edge_to_draft(edge: dict[str, Any], source_id: str) -> ItemDraft:
    """Map a single feed edge to an item draft."""
    node = edge.get("node") or {}
    item_key = _optional_str(dig(node, ("feedback", "id"))) or None

    return ItemDraft(
        item_key=item_key,
        source_id=source_id,
        external_id=decode_external_id(item_key) if item_key else None,
        created_at=_to_datetime(dig(node, CREATED_AT_PATH)),
        url=_optional_str(dig(node, URL_PATH)),
        text=_optional_str(dig(node, TEXT_PATH)),
        thread_id=_optional_str(dig(node, THREAD_ID_PATH)),
    )


def extract(document: dict[str, Any], source_id: str) -> ExtractedPage:
    """
    Extract item drafts and the continuation token from a document.

    Args:
        document: Recovered timeline document
        source_id: Source the page was fetched for

    Returns:
        ExtractedPage with drafts in feed order; ``next_cursor`` is the
        cursor of the last edge, or None for an empty page
    """
    edges = dig(document, EDGES_PATH) or []
    if not isinstance(edges, list):
        edges = []
    edges = [e for e in edges if isinstance(e, dict)]

    page = ExtractedPage(
        drafts=tuple(edge_to_draft(edge, source_id) for edge in edges),
        next_cursor=_optional_str(edges[-1].get("cursor")) if edges else None,
    )

    missing = len(page.drafts) - page.keyed_count
    if missing:
        logger.debug(f"{missing} of {len(page.drafts)} edges lack a feedback id")

    return page

"""
End-of-feed detection.

Two predicates that are deliberately kept apart:

- ``is_final`` looks at the raw response text and is the one the pagination
  state machine trusts. The upstream contract for the last page is not
  documented, so it is a plain conjunction of three literal markers.
- ``has_more_pages`` looks at the recovered document. It is used only to
  flag disagreement in the logs.
"""

from typing import Any

FINAL_MARKER = '{"is_final":true}'
FEED_CONTEXT_MARKER = "ProfileCometTimelineFeed"
NULL_END_CURSOR_MARKER = '"end_cursor":null'

FINAL_PAGE_MARKERS = (FINAL_MARKER, FEED_CONTEXT_MARKER, NULL_END_CURSOR_MARKER)


def is_final(raw: str) -> bool:
    """Return True if the raw text carries all three end-of-feed markers."""
    return all(marker in raw for marker in FINAL_PAGE_MARKERS)


def has_more_pages(document: dict[str, Any]) -> bool:
    """
    Structured check for a continuation in a recovered document.

    Prefers ``page_info.has_next_page`` on the feed units connection and
    falls back to whether the last edge carries a cursor.
    """
    units = (
        ((document.get("data") or {}).get("node") or {}).get(
            "timeline_list_feed_units"
        )
        or {}
    )

    page_info = units.get("page_info") or {}
    if "has_next_page" in page_info:
        return bool(page_info["has_next_page"])

    edges = units.get("edges") or []
    return bool(edges) and bool((edges[-1] or {}).get("cursor"))

"""
Recovery of fragment-concatenated timeline responses.

The timeline endpoint answers with an anti-scraping guard prefix followed by
one or more JSON objects written back to back with no separator, e.g.::

    for (;;);{"data": {...}}
    {"label": "...", "data": {...}}

Splitting is kept separate from parsing: ``split_fragments`` is a pure text
transformation that never fails, and ``recover`` parses only the first
fragment, which always carries the primary payload.
"""

import json
import re
from typing import Any

from harvester.errors import MalformedPayload

GUARD_TOKEN = "for (;;);"

# A closing brace, optional whitespace/newlines, then an opening brace
FRAGMENT_BOUNDARY = re.compile(r"\}\s*\{")


def strip_guard(raw: str) -> str:
    """Remove every occurrence of the anti-scraping guard token."""
    return raw.replace(GUARD_TOKEN, "")


def split_fragments(raw: str) -> list[str]:
    """
    Split a concatenated response into individually parseable fragments.

    Splitting on the boundary eats the braces on either side of it, so every
    fragment but the first gets its opening brace back and every fragment
    but the last gets its closing brace back.

    Args:
        raw: Raw response text, with or without the guard prefix

    Returns:
        Reassembled fragments in their original order (at least one)
    """
    pieces = FRAGMENT_BOUNDARY.split(strip_guard(raw))
    last = len(pieces) - 1

    fragments = []
    for i, piece in enumerate(pieces):
        if i > 0:
            piece = "{" + piece
        if i < last:
            piece = piece + "}"
        fragments.append(piece)
    return fragments


def recover(raw: str) -> dict[str, Any]:
    """
    Recover the primary document from a raw timeline response.

    Later fragments are discarded.

    Args:
        raw: Raw response text

    Returns:
        The parsed first fragment

    Raises:
        MalformedPayload: If the first fragment is not a JSON object with a
            top-level ``data`` field
    """
    first = split_fragments(raw)[0]

    try:
        document = json.loads(first)
    except json.JSONDecodeError as e:
        raise MalformedPayload(f"Cannot parse primary fragment: {e}") from e

    if not isinstance(document, dict):
        raise MalformedPayload(
            f"Primary fragment is a {type(document).__name__}, not an object"
        )
    data = document.get("data")
    # Empty containers count as present; null, false, 0 and "" do not
    if data is None or (not data and not isinstance(data, (dict, list))):
        raise MalformedPayload("Primary fragment has no 'data' field")

    return document

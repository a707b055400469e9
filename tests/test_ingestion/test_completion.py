"""Tests for end-of-feed detection."""

import pytest

from harvester.ingestion.completion import (
    FEED_CONTEXT_MARKER,
    FINAL_MARKER,
    FINAL_PAGE_MARKERS,
    NULL_END_CURSOR_MARKER,
    has_more_pages,
    is_final,
)


class TestIsFinal:
    """The raw-text heuristic is a pure three-marker conjunction."""

    def test_all_markers_present(self, final_page_raw: str):
        assert is_final(final_page_raw) is True

    def test_markers_in_any_order_and_position(self):
        raw = f"xx{NULL_END_CURSOR_MARKER}yy{FEED_CONTEXT_MARKER}zz{FINAL_MARKER}"
        assert is_final(raw) is True

    @pytest.mark.parametrize("missing", FINAL_PAGE_MARKERS)
    def test_any_missing_marker_is_not_final(self, missing: str):
        raw = "".join(m for m in FINAL_PAGE_MARKERS if m != missing)
        assert is_final(raw) is False

    def test_structured_content_is_ignored(self):
        """A document that looks exhausted is still not final without the markers."""
        raw = '{"data":{"page_info":{"has_next_page":false,"end_cursor":null}}}'
        assert is_final(raw) is False

    def test_spacing_variants_do_not_match(self):
        raw = f'{{"is_final": true}}{FEED_CONTEXT_MARKER}{NULL_END_CURSOR_MARKER}'
        assert is_final(raw) is False

    def test_empty_text(self):
        assert is_final("") is False


class TestHasMorePages:
    """Tests for the structured continuation predicate."""

    def test_page_info_true(self, make_edge):
        doc = {"data": {"node": {"timeline_list_feed_units": {
            "edges": [make_edge()], "page_info": {"has_next_page": True},
        }}}}
        assert has_more_pages(doc) is True

    def test_page_info_false_wins_over_cursor(self, make_edge):
        doc = {"data": {"node": {"timeline_list_feed_units": {
            "edges": [make_edge(cursor="abc")], "page_info": {"has_next_page": False},
        }}}}
        assert has_more_pages(doc) is False

    def test_falls_back_to_last_edge_cursor(self, make_edge):
        doc = {"data": {"node": {"timeline_list_feed_units": {
            "edges": [make_edge(cursor=None), make_edge(cursor="abc")],
        }}}}
        assert has_more_pages(doc) is True

    def test_empty_document(self):
        assert has_more_pages({"data": {}}) is False

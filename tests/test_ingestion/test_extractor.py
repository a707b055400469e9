"""Tests for mapping timeline documents onto item drafts."""

import base64
from datetime import datetime, timezone

from harvester.ingestion.extractor import (
    decode_external_id,
    dig,
    edge_to_draft,
    extract,
)


def _document(edges: list) -> dict:
    return {"data": {"node": {"timeline_list_feed_units": {"edges": edges}}}}


class TestDig:
    def test_nested_keys_and_index(self):
        data = {"a": [{"b": {"c": 5}}]}
        assert dig(data, ("a", 0, "b", "c")) == 5

    def test_missing_key(self):
        assert dig({"a": {}}, ("a", "b", "c")) is None

    def test_index_out_of_range(self):
        assert dig({"a": []}, ("a", 0, "b")) is None

    def test_wrong_container_type(self):
        assert dig({"a": "text"}, ("a", "b")) is None
        assert dig({"a": {"0": 1}}, ("a", 0)) is None


class TestDecodeExternalId:
    def test_feedback_prefix(self):
        key = base64.b64encode(b"feedback:123456").decode()
        assert decode_external_id(key) == "123456"

    def test_first_digit_run_only(self):
        key = base64.b64encode(b"feedback:987_654").decode()
        assert decode_external_id(key) == "987"

    def test_missing_padding(self):
        key = base64.b64encode(b"feedback:42").decode().rstrip("=")
        assert decode_external_id(key) == "42"

    def test_no_digits(self):
        key = base64.b64encode(b"feedback:abc").decode()
        assert decode_external_id(key) is None

    def test_not_base64(self):
        assert decode_external_id("!!!") is None


class TestEdgeToDraft:
    def test_full_edge(self, make_edge):
        draft = edge_to_draft(make_edge(), "100044")

        assert draft.item_key == base64.b64encode(b"feedback:123456").decode()
        assert draft.source_id == "100044"
        assert draft.external_id == "123456"
        assert draft.created_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert draft.url == "https://example.com/posts/1"
        assert draft.text == "Hello timeline"
        assert draft.thread_id == "story-1"
        assert draft.has_key

    def test_missing_fields_are_none(self, make_edge):
        edge = make_edge(creation_time=None, text=None, url=None, story_id=None)
        draft = edge_to_draft(edge, "100044")

        assert draft.has_key
        assert draft.created_at is None
        assert draft.url is None
        assert draft.text is None
        assert draft.thread_id is None

    def test_edge_without_node(self):
        draft = edge_to_draft({}, "100044")
        assert draft.item_key is None
        assert draft.external_id is None
        assert not draft.has_key

    def test_empty_feedback_id_is_unkeyed(self, make_edge):
        edge = make_edge()
        edge["node"]["feedback"]["id"] = ""
        assert not edge_to_draft(edge, "100044").has_key


class TestExtract:
    def test_drafts_in_feed_order_with_last_cursor(self, make_edge):
        doc = _document([
            make_edge(post_id="1", cursor="c1"),
            make_edge(post_id="2", cursor="c2"),
            make_edge(post_id="3", cursor="XYZ"),
        ])

        page = extract(doc, "100044")

        assert [d.external_id for d in page.drafts] == ["1", "2", "3"]
        assert page.next_cursor == "XYZ"
        assert page.keyed_count == 3

    def test_unkeyed_edges_are_retained(self, make_edge):
        doc = _document([make_edge(post_id="1"), make_edge(post_id=None)])

        page = extract(doc, "100044")

        assert len(page.drafts) == 2
        assert page.keyed_count == 1
        assert page.drafts[1].has_key is False

    def test_empty_page(self):
        page = extract(_document([]), "100044")
        assert page.drafts == ()
        assert page.next_cursor is None

    def test_missing_edges_path(self):
        page = extract({"data": {}}, "100044")
        assert page.drafts == ()
        assert page.next_cursor is None

    def test_last_edge_without_cursor(self, make_edge):
        doc = _document([make_edge(cursor="c1"), make_edge(cursor=None)])
        assert extract(doc, "100044").next_cursor is None

"""
Unit tests for src/graph_client/odata.py.

Covers:
- Query.values: option rendering, zero-value omission, $search quoting.
- Query.headers: metadata level Accept header, ConsistencyLevel.
- Query validation: unknown metadata level, negative paging.
- parse_error_envelope: well-formed, absent, malformed and foreign bodies.
- ODataError.match: top-level and nested detail text, invalid patterns.
"""

from __future__ import annotations

import json

import pytest

from src.graph_client.odata import (
    Expand,
    ODataError,
    OrderBy,
    Query,
    eventual,
    parse_error_envelope,
)


# ---------------------------------------------------------------------------
# Class: Query
# ---------------------------------------------------------------------------

class TestQueryValues:

    def test_empty_query_renders_nothing(self):
        assert Query().values() == {}
        assert Query().headers() == {}

    def test_all_options_rendered(self):
        query = Query(
            filter="startswith(displayName,'a')",
            select=("id", "displayName"),
            top=10,
            skip=5,
            order_by=OrderBy("displayName", "desc"),
            expand=Expand("members", ("id",)),
            search="release",
            count=True,
            format="json",
        )
        assert query.values() == {
            "$count": "true",
            "$expand": "members($select=id)",
            "$filter": "startswith(displayName,'a')",
            "$format": "json",
            "$orderby": "displayName desc",
            "$search": '"release"',
            "$select": "id,displayName",
            "$skip": "5",
            "$top": "10",
        }

    def test_zero_top_and_skip_omitted(self):
        assert "$top" not in Query(top=0).values()
        assert "$skip" not in Query(skip=0).values()

    def test_expand_without_select(self):
        assert Query(expand=Expand("members")).values() == {"$expand": "members"}

    def test_negative_top_rejected(self):
        with pytest.raises(ValueError):
            Query(top=-1)


class TestQueryHeaders:

    def test_metadata_level_in_accept_header(self):
        headers = Query(metadata="full").headers()
        assert headers == {"Accept": "application/json; odata.metadata=full"}

    def test_unknown_metadata_level_rejected(self):
        with pytest.raises(ValueError, match="metadata level"):
            Query(metadata="verbose")

    def test_with_metadata_returns_copy(self):
        original = Query(top=3)
        forced = original.with_metadata("minimal")
        assert original.metadata == ""
        assert forced.metadata == "minimal"
        assert forced.top == 3

    def test_eventual_sets_consistency_level(self):
        headers = eventual(Query(count=True)).headers()
        assert headers["ConsistencyLevel"] == "eventual"


# ---------------------------------------------------------------------------
# Class: parse_error_envelope
# ---------------------------------------------------------------------------

class TestParseErrorEnvelope:

    def test_standard_envelope(self):
        body = json.dumps({
            "error": {
                "code": "Request_BadRequest",
                "message": "Invalid value",
                "target": "topic",
                "details": [{"code": "Inner", "message": "nested reason"}],
                "innerError": {"request-id": "abc"},
            }
        }).encode()
        error = parse_error_envelope(body)
        assert error is not None
        assert error.code == "Request_BadRequest"
        assert error.message == "Invalid value"
        assert error.target == "topic"
        assert error.details[0].message == "nested reason"
        assert error.inner_error == {"request-id": "abc"}

    @pytest.mark.parametrize("body", [
        None,
        b"",
        b"<html>gateway error</html>",
        b"[1, 2, 3]",
        b'{"value": []}',
        b'{"error": "just a string"}',
        b"\xff\xfe\x00",
    ])
    def test_unparseable_bodies_return_none(self, body):
        assert parse_error_envelope(body) is None


# ---------------------------------------------------------------------------
# Class: ODataError.match
# ---------------------------------------------------------------------------

class TestODataErrorMatch:

    def test_matches_message_substring(self):
        error = ODataError(code="Forbidden", message="One or more members cannot be added to the thread roster")
        assert error.match("cannot be added to the thread roster")

    def test_matches_nested_detail(self):
        error = ODataError(
            code="BadRequest",
            message="Request failed",
            details=[ODataError(message="member propagation pending")],
        )
        assert error.match("propagation pending")

    def test_no_match(self):
        assert not ODataError(message="Insufficient privileges").match("thread roster")

    def test_regex_pattern(self):
        assert ODataError(message="Resource 'x' does not exist").match(r"Resource '.+' does not exist")

    def test_invalid_regex_falls_back_to_substring(self):
        assert ODataError(message="bad [pattern").match("bad [pattern")

    def test_empty_error_renders_empty(self):
        error = ODataError()
        assert str(error) == ""
        assert not error.match("anything")

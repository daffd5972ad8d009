"""Tests for the incremental JSON parser and SSE framing."""

from __future__ import annotations

import json

from plan_overlay.llm.stream import IncrementalJsonParser, first_json_object, sse_done, sse_event


def test_object_split_across_chunks():
    parser = IncrementalJsonParser()
    assert parser.feed('Here you go: {"shiftMe') == []
    assert parser.pending == '{"shiftMe'
    assert parser.feed('ters": {"north": 4') == []
    assert parser.feed('}, "confidence": 0.8}') == [{"shiftMeters": {"north": 4}, "confidence": 0.8}]
    assert parser.pending == ""


def test_braces_inside_strings_are_ignored():
    parser = IncrementalJsonParser()
    objects = parser.feed('{"reasoning": "the {north} edge \\"}\\" is off"}')
    assert objects == [{"reasoning": 'the {north} edge "}" is off'}]


def test_multiple_objects_and_trailing_text():
    parser = IncrementalJsonParser()
    assert parser.feed('{"a": 1} and {"b": 2} then {"c"') == [{"a": 1}, {"b": 2}]
    assert parser.feed(": 3}") == [{"c": 3}]


def test_malformed_object_is_skipped():
    parser = IncrementalJsonParser()
    assert parser.feed("{not json} {\"ok\": true}") == [{"ok": True}]


def test_first_json_object():
    assert first_json_object("prose only") is None
    assert first_json_object('x {"a": [1, {"b": 2}]} y') == {"a": [1, {"b": 2}]}


def test_sse_framing():
    frame = sse_event("stage", {"stage": "reading"})
    assert frame.startswith("event: stage\n")
    assert frame.endswith("\n\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"stage": "reading"}
    assert sse_done().startswith("event: done\n")

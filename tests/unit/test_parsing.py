"""Tests for JSON extraction and the parsing policy."""

import pytest

from hyperflow.generation import extract_json, parse_response


def test_fenced_json_with_prose():
    result = parse_response('Sure! ```json\n{"a":1}\n```', "json")
    assert result.data == {"a": 1}
    assert not result.degraded


def test_json_array_is_extracted():
    result = parse_response('Here you go: [{"q": "why?"}, {"q": "how?"}] hope it helps', "json")
    assert result.data == [{"q": "why?"}, {"q": "how?"}]


def test_first_balanced_span_wins():
    found, value = extract_json('noise {not json} then {"slides": []} and {"other": 1}')
    assert found
    assert value == {"slides": []}


def test_non_json_degrades_to_raw():
    text = "I could not produce JSON for that."
    result = parse_response(text, "json")
    assert result.data == {"raw": text}
    assert result.degraded
    assert result.text == text


@pytest.mark.parametrize("output_format", ["markdown", "text"])
def test_markdown_and_text_are_verbatim(output_format):
    text = '```json\n{"a": 1}\n```'
    result = parse_response(text, output_format)
    assert result.data == text
    assert not result.degraded

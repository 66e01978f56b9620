import json

import pytest

from oncall_copilot import codec
from oncall_copilot.codec import decode_as, decode_json_object
from oncall_copilot.errors import EmptyResponseError, UnparsableResponseError
from oncall_copilot.models import CopilotState


def test_well_formed_json_is_returned_unchanged():
    payload = {"summary": "s", "steps": [{"id": "S1"}], "confidence": 0.5, "nested": {"a": [1, 2]}}
    assert decode_json_object(json.dumps(payload)) == payload


def test_embedded_object_is_salvaged_from_prose():
    raw = 'Here is the report:\n```json\n{"summary": "db down", "confidence": 0.7}\n```\nHope it helps.'
    assert decode_json_object(raw) == {"summary": "db down", "confidence": 0.7}


def test_salvage_takes_first_balanced_span_and_respects_strings():
    raw = 'prefix {"a": "x}y", "b": {"c": 1}} trailing {"z": 2}'
    assert decode_json_object(raw) == {"a": "x}y", "b": {"c": 1}}


@pytest.mark.parametrize("raw", [None, "", "   \n"])
def test_empty_text_fails_without_salvage(raw, monkeypatch):
    def boom(text):
        raise AssertionError("salvage attempted")

    monkeypatch.setattr(codec, "_first_balanced_object", boom)
    with pytest.raises(EmptyResponseError):
        decode_json_object(raw)


def test_text_without_object_is_unparsable_with_excerpt():
    raw = "I could not complete the analysis " * 10
    with pytest.raises(UnparsableResponseError) as info:
        decode_json_object(raw)
    assert info.value.excerpt == raw[:100]


def test_unbalanced_object_is_unparsable():
    with pytest.raises(UnparsableResponseError):
        decode_json_object('result: {"summary": "cut off')


def test_broken_extracted_block_is_unparsable():
    with pytest.raises(UnparsableResponseError) as info:
        decode_json_object("see {not: json} here")
    assert info.value.reason == "could not parse extracted JSON block"


def test_decode_as_keeps_out_of_range_confidence():
    state = decode_as('{"summary": "s", "hypothesis": "h", "confidence": 85}', CopilotState)
    assert state.confidence == 85
    assert state.steps == []


def test_decode_as_rejects_wrong_shape():
    with pytest.raises(UnparsableResponseError):
        decode_as('{"confidence": "very high"}', CopilotState)


def test_decode_as_rejects_non_object():
    with pytest.raises(UnparsableResponseError):
        decode_as("[1, 2, 3]", CopilotState)

"""Decoding of the oracle's structured text payloads."""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from oncall_copilot.errors import EmptyResponseError, UnparsableResponseError
from oncall_copilot.logging_config import get_logger

logger = get_logger(__name__)

EXCERPT_LENGTH = 100

ModelT = TypeVar("ModelT", bound=BaseModel)


def decode_json_object(text: str | None) -> Any:
    """Parse ``text`` as JSON, falling back to the first balanced ``{...}`` span.

    Raises ``EmptyResponseError`` for missing text and ``UnparsableResponseError``
    when neither the text nor an embedded object parses.
    """
    if text is None or not text.strip():
        raise EmptyResponseError()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    span = _first_balanced_object(text)
    if span is None:
        raise UnparsableResponseError(text[:EXCERPT_LENGTH])

    try:
        data = json.loads(span)
    except json.JSONDecodeError as exc:
        raise UnparsableResponseError(
            text[:EXCERPT_LENGTH], reason="could not parse extracted JSON block"
        ) from exc

    logger.info("structured_output_salvaged", extra={"prefix_chars": text.find(span)})
    return data


def decode_as(text: str | None, model_cls: type[ModelT]) -> ModelT:
    data = decode_json_object(text)
    if not isinstance(data, dict):
        raise UnparsableResponseError(
            text[:EXCERPT_LENGTH], reason=f"expected an object, got {type(data).__name__}"
        )
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise UnparsableResponseError(
            text[:EXCERPT_LENGTH], reason=f"{exc.error_count()} schema violation(s)"
        ) from exc


def _first_balanced_object(text: str) -> str | None:
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None

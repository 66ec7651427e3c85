"""
Parsing of free-form LLM replies.

Replies are expected to contain JSON but may wrap it in prose or code
fences, or be garbage. Parsing returns a tagged result instead of
raising, so callers handle both branches explicitly.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Union

_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ParseOk:
    """Successfully decoded JSON value."""
    value: Any


@dataclass(frozen=True)
class ParseFailed:
    """Reply that did not contain the expected JSON."""
    raw_text: str
    reason: str


ParseResult = Union[ParseOk, ParseFailed]


def _extract(text: str, pattern: re.Pattern, expected: type, label: str) -> ParseResult:
    if not text or not text.strip():
        return ParseFailed(raw_text=text or "", reason="empty reply")

    match = pattern.search(text)
    if not match:
        return ParseFailed(raw_text=text, reason=f"no JSON {label} found")

    candidate = match.group(0)
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        # Greedy match may swallow trailing prose; decode the first value only
        try:
            value, _ = _decoder.raw_decode(candidate)
        except json.JSONDecodeError as e:
            return ParseFailed(raw_text=text, reason=f"invalid JSON: {e.msg}")

    if not isinstance(value, expected):
        return ParseFailed(raw_text=text, reason=f"expected a JSON {label}")

    return ParseOk(value=value)


def parse_json_object(text: str) -> ParseResult:
    """Extract and decode the first JSON object in an LLM reply."""
    return _extract(text, _OBJECT_PATTERN, dict, "object")


def parse_json_array(text: str) -> ParseResult:
    """Extract and decode the first JSON array in an LLM reply."""
    return _extract(text, _ARRAY_PATTERN, list, "array")

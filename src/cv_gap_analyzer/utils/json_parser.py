"""Utility to repair and parse JSON from LLM responses.

Model output is free text that usually, but not always, contains a JSON
object. ``sanitize_and_parse`` strips code fences and surrounding prose, runs
the ``REPAIRS`` pipeline over the remaining text and parses the result.
Each repair is a pure, idempotent ``str -> str`` function.
"""

from __future__ import annotations

import json
import re
from typing import Callable

from cv_gap_analyzer.errors import MalformedResponse

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_SINGLE_QUOTED_VALUE_RE = re.compile(r":\s*'([^']*)'")
_WHITESPACE_RE = re.compile(r"\s+")
_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"')


def _outside_strings(text: str, pattern: re.Pattern, repl: str) -> str:
    """Apply a substitution only to the parts of text outside double-quoted strings."""
    parts: list[str] = []
    last = 0
    for m in _STRING_RE.finditer(text):
        parts.append(pattern.sub(repl, text[last : m.start()]))
        parts.append(m.group(0))
        last = m.end()
    parts.append(pattern.sub(repl, text[last:]))
    return "".join(parts)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers (```json, ```, ...) anywhere in text."""
    return _FENCE_RE.sub("", text).strip()


def drop_trailing_commas(text: str) -> str:
    """``[1, 2,]`` -> ``[1, 2]`` and ``{"a": 1,}`` -> ``{"a": 1}``."""
    return _outside_strings(text, _TRAILING_COMMA_RE, r"\1")


def quote_bare_keys(text: str) -> str:
    """``{score: 1}`` -> ``{"score": 1}``."""
    return _outside_strings(text, _BARE_KEY_RE, r'\1"\2":')


def single_to_double_quotes(text: str) -> str:
    """``{"a": 'x'}`` -> ``{"a": "x"}``."""
    return _outside_strings(text, _SINGLE_QUOTED_VALUE_RE, r': "\1"')


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs, including raw newlines inside strings."""
    return _WHITESPACE_RE.sub(" ", text).strip()


REPAIRS: tuple[Callable[[str], str], ...] = (
    drop_trailing_commas,
    quote_bare_keys,
    single_to_double_quotes,
    collapse_whitespace,
)


def slice_object(text: str) -> str:
    """Return the text from the first '{' to the last '}' inclusive."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or start >= end:
        raise MalformedResponse(f"No JSON object found in response: {text[:200]!r}")
    return text[start : end + 1]


def repair(text: str) -> str:
    """Run every repair in ``REPAIRS`` in order."""
    for fix in REPAIRS:
        text = fix(text)
    return text


def sanitize_and_parse(raw: str) -> dict:
    """Extract, repair and parse the JSON object embedded in an LLM response.

    Raises:
        MalformedResponse: no balanced braces were found, or the repaired
            text is still not valid JSON.
    """
    if not isinstance(raw, str):
        raise MalformedResponse(f"Expected text from LLM, got {type(raw).__name__}")

    candidate = repair(slice_object(strip_code_fences(raw)))
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Invalid JSON after repair: {exc}") from exc

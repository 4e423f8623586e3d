"""Reduce a raw agent reply to plain text or a structured value.

The agent's reply format is not fixed: it may be prose, prose with a JSON
object embedded in it, a tool-call envelope (``[{"output": ...}]``), a
``response_0.chart_payload`` wrapper, or a bare object. ``normalize`` never
raises; anything it cannot make sense of is returned as text.
"""

import json
import logging
from typing import Any

from app.agents.chart.schemas import NormalizedContent, PlainText, StructuredValue

logger = logging.getLogger(__name__)

# Limits on pathological input. Disjoint candidates cost linear time in
# total, so only work that revisits text is capped: candidates nested inside
# one already tried, and brace scans restarted inside scanned text (a "{"
# an earlier scan saw inside a string literal).
MAX_JSON_CANDIDATES = 64
MAX_BRACE_RESCANS = 64
MAX_ENVELOPE_DEPTH = 32


def _pair_braces(text: str, start: int, pairs: dict[int, int]) -> int:
    """Scan from the brace at ``start`` and record where each opened brace closes.

    Every "{" opened outside a JSON string literal during the scan gets its
    closing index in ``pairs``, or -1 when the text ends first. A scan started
    at any of those braces would see the same characters in the same string
    state, so their entries are final. Returns the last index scanned.
    """
    stack: list[int] = []
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
            stack.append(index)
        elif char == "}":
            pairs[stack.pop()] = index
            if not stack:
                return index
    for index in stack:
        pairs[index] = -1
    return len(text) - 1


def _iter_object_candidates(text: str):
    """Yield balanced ``{...}`` substrings in order of their opening brace."""
    pairs: dict[int, int] = {}
    scanned_to = -1
    rescans = 0
    tried_to = -1
    nested = 0
    start = text.find("{")
    while start != -1:
        if start not in pairs:
            if start <= scanned_to:
                if rescans >= MAX_BRACE_RESCANS:
                    return
                rescans += 1
            scanned_to = max(scanned_to, _pair_braces(text, start, pairs))
        end = pairs[start]
        if end != -1:
            if start <= tried_to:
                if nested >= MAX_JSON_CANDIDATES:
                    return
                nested += 1
            tried_to = max(tried_to, end)
            yield text[start : end + 1]
        start = text.find("{", start + 1)


def extract_json_object(text: str) -> dict | None:
    """Return the first embedded JSON object that parses, if any.

    Candidates are tried by position of their opening brace, so an outer
    object wins over the objects nested inside it.
    """
    for candidate in _iter_object_candidates(text):
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError):
            logger.debug("Embedded JSON candidate did not parse (%d chars).", len(candidate))
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _unwrap_envelope(raw: list) -> tuple[bool, Any]:
    if raw and isinstance(raw[0], dict) and "output" in raw[0]:
        return True, raw[0]["output"]
    return False, raw


def _unwrap_chart_payload(raw: dict) -> dict:
    wrapper = raw.get("response_0")
    if not isinstance(wrapper, dict):
        return raw
    payload = wrapper.get("chart_payload")
    if not isinstance(payload, dict):
        return raw
    labels = payload.get("labels")
    if isinstance(labels, (list, tuple)) and len(labels) > 0:
        return payload
    return raw


def _scalar_to_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    try:
        return json.dumps(raw, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(raw)


def normalize(raw: Any) -> NormalizedContent:
    current = raw
    for _ in range(MAX_ENVELOPE_DEPTH):
        if isinstance(current, list):
            unwrapped, current = _unwrap_envelope(current)
            if unwrapped:
                continue
            return StructuredValue(current)
        break

    if isinstance(current, str):
        embedded = extract_json_object(current)
        if embedded is not None:
            return StructuredValue(embedded)
        return PlainText(current)

    if isinstance(current, dict):
        return StructuredValue(_unwrap_chart_payload(current))

    if isinstance(current, list):
        # Envelope nesting deeper than MAX_ENVELOPE_DEPTH.
        return StructuredValue(current)

    return PlainText(_scalar_to_text(current))

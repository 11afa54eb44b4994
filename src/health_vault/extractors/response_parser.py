# ============================================================================
# src/health_vault/extractors/response_parser.py
# ============================================================================
"""
Extraction Response Parser

Turns the model's reply into an ExtractedRecord. Models wrap JSON in
markdown fences, add commentary before and after it, or cut it short, so:

1. A fenced code block, if present, narrows the search to its content
2. Top-level {...} spans are found with a balanced, string-aware scan;
   the first one that parses wins (one with a document_type key first)
3. Failing that, the span from the first '{' to the last '}' is tried
4. json_repair gets a go at each candidate only after strict parsing fails
5. Anything that still is not a JSON object is an UnknownDocument

parse_extraction_response() never raises.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from json_repair import repair_json

from ..core.records import ExtractedRecord, UnknownDocument, record_from_dict
from ..utils.exceptions import ParseError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")


def strip_code_fence(text: str) -> str:
    """Return the content of the first fenced block, or text unchanged."""
    match = _CODE_FENCE.search(text)
    if match and "{" in match.group(1):
        return match.group(1).strip()
    return text


def balanced_object_spans(text: str) -> List[Tuple[int, int]]:
    """
    (start, end) of every top-level {...} span, end exclusive.

    Braces inside JSON strings are ignored. An object left open at the end
    of the text produces no span.
    """
    spans = []
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            # Quotes only open strings inside an object; prose may be unbalanced
            if depth > 0:
                in_string = True
        elif char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append((start, i + 1))

    return spans


def _outer_span(text: str) -> Optional[str]:
    first = text.find("{")
    if first == -1:
        return None
    last = text.rfind("}")
    if last <= first:
        # Truncated reply: hand everything from the first brace to json_repair
        return text[first:]
    return text[first:last + 1]


def _strict_load(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _repair_load(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = repair_json(candidate, return_objects=True)
    except Exception as e:
        logger.debug(f"json_repair failed: {e}")
        return None
    if isinstance(data, dict) and data:
        return data
    return None


def find_json_object(text: str) -> Dict[str, Any]:
    """
    Recover one JSON object from free text.

    Raises:
        ParseError: no candidate yields a JSON object
    """
    if not text or not text.strip():
        raise ParseError("Empty model response")

    candidate_text = strip_code_fence(text)

    candidates = [candidate_text[s:e] for s, e in balanced_object_spans(candidate_text)]
    outer = _outer_span(candidate_text)
    if outer is not None and outer not in candidates:
        candidates.append(outer)

    if not candidates:
        raise ParseError("No JSON object in model response")

    for loader in (_strict_load, _repair_load):
        parsed = [obj for obj in (loader(c) for c in candidates) if obj is not None]
        if parsed:
            tagged = [obj for obj in parsed if "document_type" in obj]
            if loader is _repair_load:
                logger.debug("json_repair recovered the model response")
            return (tagged or parsed)[0]

    raise ParseError("Model response JSON could not be parsed")


def parse_extraction_response(text: str) -> ExtractedRecord:
    """
    Parse a raw extraction reply into a record.

    Never raises: empty, prose-only or malformed replies and unrecognised
    document types all come back as UnknownDocument.
    """
    text = text if isinstance(text, str) else ""
    logger.debug(f"AI raw response (first 500 chars): {text[:500]}")

    try:
        data = find_json_object(text)
    except ParseError as e:
        logger.warning(f"Failed to parse AI response ({e}). Full response: {text}")
        return UnknownDocument()

    record = record_from_dict(data)
    if isinstance(record, UnknownDocument) and data.get("document_type") != "unknown":
        logger.info(f"Unrecognised document_type {data.get('document_type')!r}, using unknown")
    return record

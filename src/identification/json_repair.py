# src/identification/json_repair.py — v1
"""Recover a JSON object from chatty or truncated model output.

Models wrap JSON in code fences or prose, and long answers get cut off at
the token limit. ``extract_json`` strips the wrapping and, as a last
resort, closes whatever strings, arrays and objects were left open.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)(?:\s*```|$)", re.IGNORECASE)
_PARTIAL_SCALAR_RE = re.compile(r"(:\s*|[\[,]\s*)(-?[0-9.eE+-]+|[a-z]+)$")
_COMPLETE_SCALAR_RE = re.compile(r"^(?:true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)$")
_CLOSERS = {"{": "}", "[": "]"}


class JsonExtractionError(ValueError):
    """No JSON object could be recovered from the text."""


def extract_json(text: str) -> dict[str, Any]:
    """Parse the first JSON object in a model response.

    Raises:
        JsonExtractionError: If no object can be recovered.
    """
    candidate = text.strip()
    fence = _FENCE_RE.search(candidate)
    if fence and fence.group(1):
        candidate = fence.group(1).strip()

    for attempt in _candidates(candidate):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
        raise JsonExtractionError(f"Expected a JSON object, got {type(parsed).__name__}")
    raise JsonExtractionError("No JSON object found in AI response")


def _candidates(text: str):
    yield text
    first = text.find("{")
    if first == -1:
        return
    sliced = text[first:]
    if sliced != text:
        yield sliced
    last = sliced.rfind("}")
    if last != -1 and last != len(sliced) - 1:
        yield sliced[: last + 1]
    logger.debug("Attempting truncated JSON repair (%d chars)", len(sliced))
    yield repair_truncated_json(sliced)


def repair_truncated_json(text: str) -> str:
    """Close open strings, arrays and objects of a truncated JSON document."""
    stack, in_string, last_string_start = _scan(text)

    if in_string:
        before = text[:last_string_start].rstrip()
        if _is_value_position(before, stack):
            text = text.rstrip("\\") + '"'
        else:
            # Truncated inside a key: drop it.
            text = before
    elif text.rstrip().endswith('"') and stack and stack[-1] == "{":
        before = text[:last_string_start].rstrip()
        if before.endswith((",", "{")):
            # Complete key with no colon.
            text = before

    text = _trim_dangling(text.rstrip())
    closing = "".join(_CLOSERS[c] for c in reversed(stack))
    if closing:
        logger.debug("Repaired JSON by appending %r", closing)
    return text + closing


def _scan(text: str) -> tuple[list[str], bool, int]:
    """Open-container stack, whether text ends inside a string, last string start."""
    stack: list[str] = []
    in_string = False
    escape = False
    last_string_start = -1
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            last_string_start = i
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]" and stack:
            stack.pop()
    return stack, in_string, last_string_start


def _is_value_position(before: str, stack: list[str]) -> bool:
    if before.endswith(":"):
        return True
    return bool(stack) and stack[-1] == "[" and before.endswith(("[", ","))


def _trim_dangling(text: str) -> str:
    """Drop trailing commas and half-written scalars; null-fill bare keys."""
    while True:
        previous = text
        scalar = _PARTIAL_SCALAR_RE.search(text)
        if scalar and not _COMPLETE_SCALAR_RE.match(scalar.group(2)):
            text = text[: scalar.start(2)].rstrip()
        if text.endswith(","):
            text = text[:-1].rstrip()
        if text.endswith(":"):
            text += " null"
        if text == previous:
            return text


# --- Partial detection ---

_BRAND_PATTERNS = (
    re.compile(r"brand[\"']?\s*[:\s]+[\"']?([A-Za-z0-9][A-Za-z0-9 ]*)[\"']?", re.IGNORECASE),
    re.compile(r"manufacturer[\"']?\s*[:\s]+[\"']?([A-Za-z0-9][A-Za-z0-9 ]*)[\"']?", re.IGNORECASE),
    re.compile(
        r"\b(Apple|Samsung|Sony|LG|Dell|HP|Logitech|Corsair|Razer|ASUS|MSI|Intel|AMD|NVIDIA|"
        r"Microsoft|Google|Bose|JBL|Nintendo|Lenovo)\b",
        re.IGNORECASE,
    ),
)
_OBJECT_PATTERNS = (
    re.compile(r"parent_object[\"']?\s*[:\s]+[\"']?([^\"'\n,}]+)", re.IGNORECASE),
    re.compile(r"this (?:is|appears to be|looks like) (?:a |an )?([^.\n]+)", re.IGNORECASE),
    re.compile(r"identified as (?:a |an )?([^.\n]+)", re.IGNORECASE),
)
_CATEGORY_RE = re.compile(
    r"category[\"']?\s*[:\s]+[\"']?(ICs/Chips|Passive Components|Electromechanical|Connectors|"
    r"Display/LEDs|Sensors|Power|PCB|Audio|Other)",
    re.IGNORECASE,
)
_CONDITION_RE = re.compile(
    r"condition[\"']?\s*[:\s]+[\"']?(New|Good|Fair|For Parts|Poor)", re.IGNORECASE
)


def extract_partial_info(text: str) -> dict[str, str]:
    """Best-effort brand/object/category/condition from unparseable output."""
    info: dict[str, str] = {}
    for pattern in _BRAND_PATTERNS:
        match = pattern.search(text)
        if match:
            info["brand"] = match.group(1).strip()
            break
    for pattern in _OBJECT_PATTERNS:
        match = pattern.search(text)
        if match:
            info["object_type"] = match.group(1).strip()
            break
    match = _CATEGORY_RE.search(text)
    if match:
        info["category"] = match.group(1)
    match = _CONDITION_RE.search(text)
    if match:
        info["condition"] = match.group(1)
    if info:
        logger.info("Partial detection: %s", info)
    return info

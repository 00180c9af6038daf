# src/identification/validation.py — v2
"""Strict validation of AI JSON into typed results.

Upstream output is never trusted. Each payload is normalised (category
synonyms, clamped scores, swapped value ranges, capped list lengths) and
then validated by the pydantic models. Anything that still fails becomes
a ``ParseFailure`` instead of an exception.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from pydantic import BaseModel, ValidationError

from scavy.core.models import (
    COMPONENT_CATEGORIES,
    ComponentItem,
    DeviceIdentity,
    Disassembly,
    IdentificationResult,
)
from scavy.disclosure.models import ComponentStub
from scavy.identification.json_repair import (
    JsonExtractionError,
    extract_json,
    extract_partial_info,
)

logger = logging.getLogger(__name__)

PARSE_FAILURE_MESSAGE = "Full breakdown failed, but here is what was detected."
MAX_COMMON_USES = 5
MAX_TOOLS = 8

_CATEGORY_SYNONYMS: dict[str, str] = {
    "ic": "ICs/Chips", "ics": "ICs/Chips", "chip": "ICs/Chips", "chips": "ICs/Chips",
    "ics/chips": "ICs/Chips", "microcontroller": "ICs/Chips", "semiconductor": "ICs/Chips",
    "passive": "Passive Components", "passives": "Passive Components",
    "passive components": "Passive Components", "capacitor": "Passive Components",
    "resistor": "Passive Components",
    "electromechanical": "Electromechanical", "motor": "Electromechanical",
    "switch": "Electromechanical", "relay": "Electromechanical", "mechanical": "Electromechanical",
    "connector": "Connectors", "connectors": "Connectors", "cable": "Connectors",
    "display": "Display/LEDs", "displays": "Display/LEDs", "led": "Display/LEDs",
    "leds": "Display/LEDs", "display/leds": "Display/LEDs", "screen": "Display/LEDs",
    "sensor": "Sensors", "sensors": "Sensors",
    "power": "Power", "battery": "Power", "power supply": "Power",
    "pcb": "PCB", "board": "PCB", "circuit board": "PCB",
    "audio": "Audio", "speaker": "Audio", "microphone": "Audio",
    "other": "Other",
}
_CONDITIONS = {"new": "New", "good": "Good", "fair": "Fair", "for parts": "For Parts", "poor": "For Parts"}
_DIFFICULTIES = {"easy": "Easy", "medium": "Medium", "moderate": "Medium", "hard": "Hard", "difficult": "Hard"}
_RISKS = {"low": "Low", "medium": "Medium", "moderate": "Medium", "high": "High"}


class ParseFailure(BaseModel):
    """AI output that could not be turned into a valid result."""

    reason: str
    raw_response: str
    partial_detection: dict[str, str] = {}

    def to_result(self) -> IdentificationResult:
        return IdentificationResult(
            items=[],
            message=PARSE_FAILURE_MESSAGE,
            raw_response=self.raw_response,
            partial_detection=self.partial_detection or None,
            error_kind="parse_failure",
        )


# --- Scalar coercion ---


def _float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.replace("$", "").replace(",", "").strip())
        else:
            return default
    except (ValueError, OverflowError):
        return default
    # NaN and infinities parse as JSON but never round to an int.
    return number if math.isfinite(number) else default


def _int(value: Any, default: int) -> int:
    return int(round(_float(value, float(default))))


def _age(value: Any) -> int | None:
    age = _int(value, -1)
    return age if 0 <= age <= 100 else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _str_list(value: Any, limit: int) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()][:limit]


def _confidence(value: Any, default: float = 0.5) -> float:
    conf = _float(value, default)
    if 1.0 < conf <= 100.0:
        conf /= 100.0
    return _clamp(conf, 0.0, 1.0)


def _value_range(low: Any, high: Any) -> tuple[float, float]:
    lo, hi = max(0.0, _float(low)), max(0.0, _float(high))
    if lo > hi:
        lo, hi = hi, lo
    return lo, hi


def normalize_category(value: Any) -> str:
    """Map free-form category text onto the closed category set."""
    text = _text(value)
    if text in COMPONENT_CATEGORIES:
        return text
    lowered = text.lower()
    if lowered in _CATEGORY_SYNONYMS:
        return _CATEGORY_SYNONYMS[lowered]
    for word, category in _CATEGORY_SYNONYMS.items():
        if len(word) > 3 and word in lowered:
            return category
    return "Other"


def _enum(value: Any, table: dict[str, str], default: str | None) -> str | None:
    return table.get(_text(value).lower(), default)


# --- Component normalisation ---


def _normalize_item(raw: dict[str, Any]) -> dict[str, Any] | None:
    name = _text(raw.get("component_name") or raw.get("name"))
    if not name:
        return None
    low, high = _value_range(raw.get("market_value_low"), raw.get("market_value_high"))
    specs = raw.get("specifications")
    item: dict[str, Any] = {
        "component_name": name,
        "category": normalize_category(raw.get("category")),
        "specifications": specs if isinstance(specs, dict) else {},
        "reusability_score": int(_clamp(_int(raw.get("reusability_score"), 5), 1, 10)),
        "market_value_low": low,
        "market_value_high": high,
        "condition": _enum(raw.get("condition"), _CONDITIONS, "Good"),
        "confidence": _confidence(raw.get("confidence")),
        "description": _text(raw.get("description")),
        "common_uses": _str_list(raw.get("common_uses"), MAX_COMMON_USES),
        "quantity": max(1, _int(raw.get("quantity"), 1)),
    }
    for key in ("technical_specs", "source_info"):
        value = raw.get(key)
        if isinstance(value, dict):
            item[key] = {k: (None if v is None else str(v)) for k, v in value.items()}
    return item


def _normalize_disassembly(raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    return {
        "steps": _str_list(raw.get("steps"), 50),
        "difficulty": _enum(raw.get("difficulty"), _DIFFICULTIES, None),
        "time_estimate": _text(raw.get("time_estimate")) or None,
        "injury_risk": _enum(raw.get("injury_risk"), _RISKS, None),
        "damage_risk": _enum(raw.get("damage_risk"), _RISKS, None),
        "safety_warnings": _str_list(raw.get("safety_warnings"), 20) or None,
        "tutorial_url": _text(raw.get("tutorial_url")) or None,
        "video_url": _text(raw.get("video_url")) or None,
    }


# --- Public validators ---


def validate_identification(data: Any, raw_text: str = "") -> IdentificationResult | ParseFailure:
    """Validate a parsed full-identification payload."""
    if not isinstance(data, dict):
        return ParseFailure(reason="payload is not an object", raw_response=raw_text)

    raw_items = data.get("items")
    if raw_items is None:
        raw_items = data.get("components", [])
    if not isinstance(raw_items, list):
        return ParseFailure(
            reason="items is not a list",
            raw_response=raw_text,
            partial_detection=extract_partial_info(raw_text),
        )

    try:
        items = [n for n in (_normalize_item(i) for i in raw_items if isinstance(i, dict)) if n]
    except (ValueError, OverflowError, TypeError) as e:
        logger.warning("AI components could not be normalised: %s", e)
        return ParseFailure(
            reason=str(e)[:500],
            raw_response=raw_text,
            partial_detection=extract_partial_info(raw_text),
        )
    if len(items) < len(raw_items):
        logger.info("Dropped %d malformed component(s)", len(raw_items) - len(items))

    sum_low = round(sum(i["market_value_low"] for i in items), 2)
    sum_high = round(sum(i["market_value_high"] for i in items), 2)
    total_low, total_high = _value_range(
        data.get("total_estimated_value_low", sum_low),
        data.get("total_estimated_value_high", sum_high),
    )

    message = data.get("message")
    cleaned: dict[str, Any] = {
        "parent_object": _text(data.get("parent_object"), "Unknown object") or "Unknown object",
        "items": items,
        "total_estimated_value_low": total_low,
        "total_estimated_value_high": total_high,
        "salvage_difficulty": _enum(data.get("salvage_difficulty"), _DIFFICULTIES, "Medium"),
        "tools_needed": _str_list(data.get("tools_needed"), MAX_TOOLS),
        "estimated_device_age_years": _age(data.get("estimated_device_age_years")),
        "message": _text(message) if message else None,
    }
    disassembly = _normalize_disassembly(data.get("disassembly"))

    try:
        result = IdentificationResult.model_validate(cleaned)
        if disassembly is not None:
            try:
                result.disassembly = Disassembly.model_validate(disassembly)
            except ValidationError as e:
                logger.debug("Discarding invalid disassembly block: %s", e)
        return result
    except ValidationError as e:
        logger.warning("AI payload failed validation: %s", e.errors()[:3])
        return ParseFailure(
            reason=str(e)[:500],
            raw_response=raw_text,
            partial_detection=extract_partial_info(raw_text),
        )


def parse_identification(text: str) -> IdentificationResult | ParseFailure:
    """Extract, repair and validate a full-identification response."""
    try:
        data = extract_json(text)
    except JsonExtractionError as e:
        logger.warning("Failed to parse AI response as JSON: %s", e)
        return ParseFailure(
            reason=str(e), raw_response=text, partial_detection=extract_partial_info(text)
        )
    return validate_identification(data, raw_text=text)


def parse_identity(text: str) -> DeviceIdentity | None:
    """Extract and validate a stage-1 identity response."""
    try:
        data = extract_json(text)
    except JsonExtractionError:
        return None
    name = _text(data.get("device_name") or data.get("parent_object"))
    if not name:
        return None
    manufacturer = _text(data.get("manufacturer") or data.get("brand")) or None
    model = _text(data.get("model")) or None
    return DeviceIdentity(
        device_name=name,
        category=_text(data.get("category"), "Other") or "Other",
        manufacturer=manufacturer if manufacturer and manufacturer.lower() != "null" else None,
        model=model if model and model.lower() != "null" else None,
        confidence=_confidence(data.get("confidence")),
    )


def parse_component_list(text: str, limit: int = 50) -> list[ComponentStub] | None:
    """Extract and validate a stage-2 component list."""
    try:
        data = extract_json(text)
    except JsonExtractionError:
        return None
    raw = data.get("components", data.get("items"))
    if not isinstance(raw, list):
        return None
    stubs: list[ComponentStub] = []
    seen: set[str] = set()
    for entry in raw:
        if isinstance(entry, str):
            entry = {"component_name": entry}
        if not isinstance(entry, dict):
            continue
        name = _text(entry.get("component_name") or entry.get("name"))
        if not name:
            continue
        stub = ComponentStub(
            component_name=name,
            category=normalize_category(entry.get("category")),
            quantity=max(1, _int(entry.get("quantity"), 1)),
        )
        if stub.key in seen:
            continue
        seen.add(stub.key)
        stubs.append(stub)
    return stubs[:limit]


def parse_component_detail(text: str) -> ComponentItem | None:
    """Extract and validate a stage-3 component detail."""
    try:
        data = extract_json(text)
    except JsonExtractionError:
        return None
    if isinstance(data.get("component"), dict):
        data = data["component"]
    item = _normalize_item(data)
    if item is None:
        return None
    try:
        return ComponentItem.model_validate(item)
    except ValidationError:
        return None

# src/llm/prompts.py — v2
"""Prompt templates for every AI call the engine makes.

Full identification, quick identity (catalog hints and disclosure stage 1),
component list (stage 2) and single-component detail (stage 3). All ask for
one JSON object and nothing else.
"""

from __future__ import annotations

_CATEGORIES = (
    "ICs/Chips, Passive Components, Electromechanical, Connectors, "
    "Display/LEDs, Sensors, Power, PCB, Audio, Other"
)

_IDENTIFICATION_SYSTEM = """You identify salvageable internal components of electronics and other devices from photos.

Break the pictured object down into the individual parts a maker could harvest and reuse.
A typical electronic device has {min_components}-{max_components} such parts; list at least {min_components}.

Rules:
1. Several images always show the SAME object from different angles. Combine them.
2. Ignore plastic casing, screws, rubber feet, labels, packaging and structural plastic.
3. Focus on chips, passives, motors, switches, LEDs, displays, sensors, connectors, cables, PCBs, batteries, speakers, antennas.
4. Group repeated parts and estimate quantities (e.g. "Tactile switches (~12 pcs)").
5. Read chip markings for part numbers; when not legible, infer likely parts from brand and device type.

For each component return:
- component_name, category (one of: {categories})
- specifications (object), technical_specs {{voltage, power_rating, part_number, notes}}
- source_info {{datasheet_url, purchase_url}}
- reusability_score 1-10 (10 = very useful for DIY projects)
- market_value_low, market_value_high (USD for the quantity)
- condition (New, Good, Fair or For Parts), confidence 0.0-1.0
- description, common_uses (1-5 project ideas), quantity (integer)

Also describe disassembly of the parent object: steps, difficulty (Easy, Medium, Hard),
time_estimate, injury_risk and damage_risk (Low, Medium, High), safety_warnings,
tutorial_url and video_url (only when confident they exist).

Respond with exactly one JSON object:
{{
  "parent_object": "string",
  "items": [ {{ ...component fields... }} ],
  "total_estimated_value_low": number,
  "total_estimated_value_high": number,
  "salvage_difficulty": "Easy | Medium | Hard",
  "tools_needed": ["string"],
  "estimated_device_age_years": number or null,
  "disassembly": {{ ... }},
  "message": "optional tips or warnings"
}}"""

_IDENTIFICATION_USER = (
    "These {count} image(s) show one object. Identify it and its salvageable components. "
    "Return ONLY valid JSON, no markdown fences. When unsure, lower confidence but still "
    "return a complete object. Keep tools_needed to at most 8 items and common_uses to at "
    "most 5. Identify at least {min_components} components."
)

_HINT_SUFFIX = (
    '\n\nUser context about this object: "{hint}". Use it to improve the identification.'
)

IDENTITY_SYSTEM = """You identify devices from photos. Do not list components.
Respond with exactly one JSON object:
{"device_name": "string", "category": "string", "manufacturer": "string or null",
 "model": "string or null", "confidence": number between 0 and 1}"""

_IDENTITY_USER = "What device is shown? Read any brand or model markings."

COMPONENT_LIST_SYSTEM = f"""You list the salvageable internal components of a known device.
Names and categories only, no values or descriptions. Categories: {_CATEGORIES}.
Respond with exactly one JSON object:
{{"components": [{{"component_name": "string", "category": "string", "quantity": integer}}]}}"""

_COMPONENT_LIST_USER = (
    "Device: {device}. List between {min_components} and {max_components} harvestable "
    "components, ignoring casing, screws and packaging."
)

COMPONENT_DETAIL_SYSTEM = f"""You describe one salvageable component of a known device in detail.
Respond with exactly one JSON object with the fields: component_name, category (one of: {_CATEGORIES}),
specifications, technical_specs, source_info, reusability_score (1-10), market_value_low,
market_value_high, condition (New, Good, Fair or For Parts), confidence (0-1), description,
common_uses (1-5 strings), quantity."""

_COMPONENT_DETAIL_USER = "Device: {device}. Component: {component}."


def identification_system_prompt(min_components: int = 8, max_components: int = 20) -> str:
    """System prompt for the full decomposition call."""
    return _IDENTIFICATION_SYSTEM.format(
        min_components=min_components,
        max_components=max_components,
        categories=_CATEGORIES,
    )


def identification_user_prompt(
    image_count: int, hint: str | None = None, min_components: int = 8
) -> str:
    text = _IDENTIFICATION_USER.format(count=image_count, min_components=min_components)
    if hint:
        text += _HINT_SUFFIX.format(hint=hint.strip())
    return text


def identity_user_prompt(hint: str | None = None) -> str:
    text = _IDENTITY_USER
    if hint:
        text += _HINT_SUFFIX.format(hint=hint.strip())
    return text


def component_list_user_prompt(device: str, min_components: int = 8, max_components: int = 20) -> str:
    return _COMPONENT_LIST_USER.format(
        device=device, min_components=min_components, max_components=max_components
    )


def component_detail_user_prompt(device: str, component: str) -> str:
    return _COMPONENT_DETAIL_USER.format(device=device, component=component)

# src/core/models.py — v3
"""Shared Pydantic domain models used across modules.

The identification result contract is identical whichever tier produced it,
so every resolver builds an ``IdentificationResult`` from here.
"""

from __future__ import annotations

import re
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

Provider = Literal["openai", "gemini", "claude"]
Tier = Literal["cache", "database", "ai"]
Stage = Literal["full", "identity", "components", "detail"]

ComponentCategory = Literal[
    "ICs/Chips",
    "Passive Components",
    "Electromechanical",
    "Connectors",
    "Display/LEDs",
    "Sensors",
    "Power",
    "PCB",
    "Audio",
    "Other",
]
COMPONENT_CATEGORIES: tuple[str, ...] = get_args(ComponentCategory)

Condition = Literal["New", "Good", "Fair", "For Parts"]
Difficulty = Literal["Easy", "Medium", "Hard"]
RiskLevel = Literal["Low", "Medium", "High"]


# === REQUEST ===


class ImagePayload(BaseModel):
    """One client-supplied image, base64 encoded."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(default="image/jpeg", alias="mimeType")
    base64: str


class IdentificationRequest(BaseModel):
    """Ephemeral identification request. The fingerprint is never client-supplied."""

    images: list[ImagePayload] = Field(min_length=1)
    hint: str | None = None
    provider: Provider | None = None
    user_id: str | None = None


# === RESULT CONTRACT ===


class TechnicalSpecs(BaseModel):
    """Part-lookup details the AI tier may attach to a component."""

    voltage: str | None = None
    power_rating: str | None = None
    part_number: str | None = None
    notes: str | None = None


class SourceInfo(BaseModel):
    datasheet_url: str | None = None
    purchase_url: str | None = None


class ComponentItem(BaseModel):
    """A single salvageable component."""

    component_name: str
    category: ComponentCategory = "Other"
    specifications: dict[str, Any] = Field(default_factory=dict)
    reusability_score: int = Field(default=5, ge=1, le=10)
    market_value_low: float = Field(default=0.0, ge=0.0)
    market_value_high: float = Field(default=0.0, ge=0.0)
    condition: Condition = "Good"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    description: str = ""
    common_uses: list[str] = Field(default_factory=list, max_length=5)
    quantity: int = Field(default=1, ge=1)
    technical_specs: TechnicalSpecs | None = None
    source_info: SourceInfo | None = None


class Disassembly(BaseModel):
    """Disassembly guidance for the parent object."""

    steps: list[str] = Field(default_factory=list)
    difficulty: Difficulty | None = None
    time_estimate: str | None = None
    injury_risk: RiskLevel | None = None
    damage_risk: RiskLevel | None = None
    safety_warnings: list[str] | None = None
    tutorial_url: str | None = None
    video_url: str | None = None


class IdentificationResult(BaseModel):
    """Structured breakdown returned to the caller from any tier."""

    parent_object: str = ""
    items: list[ComponentItem] = Field(default_factory=list)
    total_estimated_value_low: float = Field(default=0.0, ge=0.0)
    total_estimated_value_high: float = Field(default=0.0, ge=0.0)
    salvage_difficulty: Difficulty = "Medium"
    tools_needed: list[str] = Field(default_factory=list, max_length=8)
    message: str | None = None
    disassembly: Disassembly | None = None
    estimated_device_age_years: int | None = Field(default=None, ge=0)

    # Provenance and diagnostics
    verified: bool = False
    from_database: bool = False
    cached: bool = False
    device_id: int | None = None
    raw_response: str | None = None
    partial_detection: dict[str, str] | None = None
    error_kind: str | None = None

    @classmethod
    def failure(cls, kind: str, message: str) -> IdentificationResult:
        """Well-formed empty result describing a user-visible failure."""
        return cls(items=[], message=message, error_kind=kind)


# === DISCLOSURE ===


_KEY_RE = re.compile(r"[^a-z0-9]+")


def normalize_key(*parts: str | None) -> str:
    """Lowercase, collapse punctuation, join non-empty parts with '|'."""
    cleaned = [_KEY_RE.sub(" ", p.lower()).strip() for p in parts if p]
    return "|".join(c for c in cleaned if c)


class DeviceIdentity(BaseModel):
    """Stage-1 answer: what the device is, without its components."""

    device_name: str
    category: str = "Other"
    manufacturer: str | None = None
    model: str | None = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @property
    def key(self) -> str:
        """Normalised identity used to key stage-2/3 caches."""
        if self.manufacturer and self.model:
            return normalize_key(self.manufacturer, self.model)
        return normalize_key(self.manufacturer, self.device_name)

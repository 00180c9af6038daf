# src/catalog/models.py — v2
"""Catalog domain models: curated devices, their components, search hints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from scavy.core.models import (
    ComponentCategory,
    DeviceIdentity,
    Difficulty,
    IdentificationResult,
    RiskLevel,
)


class CatalogComponent(BaseModel):
    """One harvestable component of a catalog device."""

    id: int | None = None
    device_id: int | None = None
    component_name: str
    category: ComponentCategory = "Other"
    specifications: dict[str, Any] = Field(default_factory=dict)
    reusability_score: int = Field(default=5, ge=1, le=10)
    market_value_new: float | None = Field(default=None, ge=0.0)
    depreciation_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    market_value_low: float | None = Field(default=None, ge=0.0)
    market_value_high: float | None = Field(default=None, ge=0.0)
    extraction_difficulty: Difficulty | None = None
    description: str = ""
    common_uses: list[str] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1)
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)


class CatalogDevice(BaseModel):
    """A curated device record."""

    id: int | None = None
    device_name: str
    brand: str | None = None
    model: str | None = None
    category: str = "Other"
    industry: str | None = None
    aliases: list[str] = Field(default_factory=list)
    verified: bool = False
    scan_count: int = 0
    confidence_score: float = Field(default=0.8, ge=0.0, le=1.0)
    disassembly_difficulty: Difficulty | None = None
    disassembly_time_estimate: str | None = None
    injury_risk: RiskLevel | None = None
    damage_risk: RiskLevel | None = None
    tools_required: list[str] = Field(default_factory=list)
    safety_warnings: list[str] = Field(default_factory=list)
    estimated_device_age_years: int | None = None
    ifixit_url: str | None = None
    video_url: str | None = None
    created_at: datetime | None = None
    components: list[CatalogComponent] = Field(default_factory=list)


class CatalogHints(BaseModel):
    """What is known about a device before searching the catalog."""

    brand: str | None = None
    model: str | None = None
    device_name: str | None = None
    category: str | None = None
    text: str | None = None

    @classmethod
    def from_text(cls, text: str | None) -> CatalogHints:
        return cls(text=text.strip() if text else None)

    @classmethod
    def from_identity(cls, identity: DeviceIdentity, text: str | None = None) -> CatalogHints:
        return cls(
            brand=identity.manufacturer,
            model=identity.model,
            device_name=identity.device_name,
            category=identity.category,
            text=text,
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.brand, self.model, self.device_name, self.text))


class CatalogMatch(BaseModel):
    """A catalog hit reshaped into the result contract."""

    device: CatalogDevice
    score: float
    result: IdentificationResult

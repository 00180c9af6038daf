# src/catalog/converter.py — v2
"""Reshape catalog rows into the identification result contract."""

from __future__ import annotations

from scavy.catalog.models import CatalogComponent, CatalogDevice
from scavy.core.models import ComponentItem, Disassembly, IdentificationResult

RESALE_LOW_FACTOR = 0.3
RESALE_HIGH_FACTOR = 0.7
MIN_DEPRECIATED_VALUE = 0.01


def depreciated_value(
    market_value_new: float, depreciation_rate: float, age_years: int
) -> tuple[float, float]:
    """Used-part value range from a new price and linear depreciation.

    ``max(0.01, new * (1 - rate * age))`` scaled by 0.3 / 0.7 for the low and
    high ends, rounded to cents.
    """
    current = max(MIN_DEPRECIATED_VALUE, market_value_new * (1 - depreciation_rate * age_years))
    return round(current * RESALE_LOW_FACTOR, 2), round(current * RESALE_HIGH_FACTOR, 2)


def component_to_item(
    component: CatalogComponent,
    age_years: int,
    default_rate: float,
) -> ComponentItem:
    if component.market_value_new is not None:
        low, high = depreciated_value(
            component.market_value_new,
            component.depreciation_rate if component.depreciation_rate is not None else default_rate,
            age_years,
        )
    else:
        low = component.market_value_low or 0.0
        high = component.market_value_high or low
    return ComponentItem(
        component_name=component.component_name,
        category=component.category,
        specifications=component.specifications,
        reusability_score=component.reusability_score,
        market_value_low=low,
        market_value_high=max(low, high),
        condition="Good",
        confidence=component.confidence,
        description=component.description,
        common_uses=component.common_uses[:5],
        quantity=component.quantity,
    )


def device_to_result(
    device: CatalogDevice,
    default_age_years: int = 3,
    default_rate: float = 0.15,
) -> IdentificationResult:
    """Build the response contract for a catalog device and its components."""
    age = device.estimated_device_age_years or default_age_years
    items = [component_to_item(c, age, default_rate) for c in device.components]
    disassembly = None
    if any((
        device.disassembly_difficulty, device.disassembly_time_estimate, device.injury_risk,
        device.damage_risk, device.safety_warnings, device.ifixit_url, device.video_url,
    )):
        disassembly = Disassembly(
            difficulty=device.disassembly_difficulty,
            time_estimate=device.disassembly_time_estimate,
            injury_risk=device.injury_risk,
            damage_risk=device.damage_risk,
            safety_warnings=device.safety_warnings or None,
            tutorial_url=device.ifixit_url,
            video_url=device.video_url,
        )
    return IdentificationResult(
        parent_object=device.device_name,
        items=items,
        total_estimated_value_low=round(sum(i.market_value_low for i in items), 2),
        total_estimated_value_high=round(sum(i.market_value_high for i in items), 2),
        salvage_difficulty=device.disassembly_difficulty or "Medium",
        tools_needed=device.tools_required[:8],
        disassembly=disassembly,
        verified=device.verified,
        from_database=True,
        device_id=device.id,
    )

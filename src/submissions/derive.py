# src/submissions/derive.py — v2
"""Deterministic catalog records derived from a submitted result."""

from __future__ import annotations

from scavy.catalog.models import CatalogComponent, CatalogDevice
from scavy.core.models import IdentificationResult
from scavy.submissions.models import SubmissionRecord


def derive_brand_model(brand: str | None, model: str | None) -> tuple[str | None, str | None]:
    """Brand/model for a submission. Only explicit values count; nothing is guessed."""
    return (brand.strip() or None) if brand else None, (model.strip() or None) if model else None


def derive_device(submission: SubmissionRecord, verified: bool) -> CatalogDevice:
    """Build the catalog device (with components) a submission promotes."""
    result = submission.raw_result
    brand, model = derive_brand_model(submission.brand, submission.model)
    components = [
        CatalogComponent(
            component_name=item.component_name,
            category=item.category,
            specifications=item.specifications,
            reusability_score=item.reusability_score,
            market_value_low=item.market_value_low,
            market_value_high=item.market_value_high,
            description=item.description,
            common_uses=item.common_uses,
            quantity=item.quantity,
            confidence=item.confidence,
        )
        for item in result.items
    ]
    disassembly = result.disassembly
    return CatalogDevice(
        device_name=result.parent_object or "Unknown object",
        brand=brand,
        model=model,
        category=result.items[0].category if result.items else "Other",
        verified=verified,
        confidence_score=(
            round(sum(i.confidence for i in result.items) / len(result.items), 3)
            if result.items else 0.5
        ),
        disassembly_difficulty=result.salvage_difficulty,
        disassembly_time_estimate=disassembly.time_estimate if disassembly else None,
        injury_risk=disassembly.injury_risk if disassembly else None,
        damage_risk=disassembly.damage_risk if disassembly else None,
        tools_required=result.tools_needed,
        safety_warnings=(disassembly.safety_warnings or []) if disassembly else [],
        estimated_device_age_years=result.estimated_device_age_years,
        ifixit_url=disassembly.tutorial_url if disassembly else None,
        video_url=disassembly.video_url if disassembly else None,
        components=components,
    )

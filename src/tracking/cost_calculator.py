# src/tracking/cost_calculator.py — v2
"""USD cost of provider calls from token usage.

Prices are per 1M tokens. Model names are matched exactly first, then by
longest known prefix so dated variants (``claude-3-haiku-20240307``) resolve.
"""

from __future__ import annotations

from scavy.tracking.models import ModelPricing

# Default pricing per 1M tokens
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4o-mini": ModelPricing(model="gpt-4o-mini", input_price_per_1m=0.15, output_price_per_1m=0.60),
    "gpt-4o": ModelPricing(model="gpt-4o", input_price_per_1m=2.50, output_price_per_1m=10.0),
    "gemini-1.5-flash": ModelPricing(model="gemini-1.5-flash", input_price_per_1m=0.075, output_price_per_1m=0.30),
    "gemini-2.0-flash": ModelPricing(model="gemini-2.0-flash", input_price_per_1m=0.10, output_price_per_1m=0.40),
    "claude-3-haiku": ModelPricing(model="claude-3-haiku", input_price_per_1m=0.25, output_price_per_1m=1.25),
    "claude-3-5-haiku": ModelPricing(model="claude-3-5-haiku", input_price_per_1m=0.80, output_price_per_1m=4.0),
    "claude-sonnet-4": ModelPricing(model="claude-sonnet-4", input_price_per_1m=3.0, output_price_per_1m=15.0),
}

# Typical token usage of one full identification call (image + long JSON answer).
TYPICAL_SCAN_INPUT_TOKENS = 1500
TYPICAL_SCAN_OUTPUT_TOKENS = 2500


def find_pricing(model: str | None, pricing: dict[str, ModelPricing] | None = None) -> ModelPricing | None:
    """Pricing for a model name, or None when unknown."""
    if not model:
        return None
    pricing = pricing or DEFAULT_PRICING
    if model in pricing:
        return pricing[model]
    matches = [name for name in pricing if model.startswith(name)]
    if not matches:
        return None
    return pricing[max(matches, key=len)]


def compute_call_cost(
    model: str | None,
    input_tokens: int,
    output_tokens: int,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Estimated cost for a single call in USD (0 for unknown models)."""
    p = find_pricing(model, pricing)
    if p is None:
        return 0.0
    cost = (max(0, input_tokens) * p.input_price_per_1m / 1_000_000
            + max(0, output_tokens) * p.output_price_per_1m / 1_000_000)
    return round(cost, 6)


def estimate_scan_cost(model: str | None, pricing: dict[str, ModelPricing] | None = None) -> float:
    """Cost a full AI identification would have had; used for cost-saved analytics."""
    return compute_call_cost(model, TYPICAL_SCAN_INPUT_TOKENS, TYPICAL_SCAN_OUTPUT_TOKENS, pricing)

# src/catalog/ranking.py — v1
"""Text relevance between search hints and catalog devices.

Scores are in [0, 1]:

    score = 0.6 * coverage + 0.4 * precision (+ 0.25 exact model match, capped)

where *coverage* is the share of query tokens found in the device's
name/brand/model/aliases and *precision* is the share of the device's
name tokens that the query mentions. A device is only eligible when at
least one query token hits its brand, model or aliases, so generic words
("bluetooth speaker") never match a specific product on their own.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from scavy.catalog.models import CatalogDevice, CatalogHints

_TOKEN_RE = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "for", "with", "my", "old", "this",
    "that", "is", "it", "its", "in", "on", "to", "from", "by", "broken", "used",
})

COVERAGE_WEIGHT = 0.6
PRECISION_WEIGHT = 0.4
EXACT_MODEL_BONUS = 0.25


def tokenize(text: str | None) -> list[str]:
    """Lowercase alphanumeric tokens without stopwords, order preserved, deduped."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for tok in _TOKEN_RE.findall(text.lower()):
        if tok not in STOPWORDS:
            seen.setdefault(tok, None)
    return list(seen)


def query_tokens(hints: CatalogHints) -> list[str]:
    """All tokens from a hint set."""
    return tokenize(" ".join(filter(None, (hints.brand, hints.model, hints.device_name, hints.text))))


def _tokens_of(parts: Iterable[str | None]) -> set[str]:
    tokens: set[str] = set()
    for p in parts:
        tokens.update(tokenize(p))
    return tokens


def relevance(hints: CatalogHints, device: CatalogDevice) -> float:
    """Score how well a device matches the hints (0 = ineligible)."""
    q = query_tokens(hints)
    if not q:
        return 0.0

    identity_tokens = _tokens_of([device.brand, device.model, *device.aliases])
    if not identity_tokens.intersection(q):
        return 0.0

    name_tokens = _tokens_of([device.device_name])
    all_tokens = identity_tokens | name_tokens

    coverage = sum(1 for t in q if t in all_tokens) / len(q)
    precision = (
        sum(1 for t in name_tokens if t in q) / len(name_tokens) if name_tokens else 0.0
    )
    score = COVERAGE_WEIGHT * coverage + PRECISION_WEIGHT * precision

    if hints.model and device.model and hints.model.strip().lower() == device.model.strip().lower():
        score += EXACT_MODEL_BONUS
    return round(min(score, 1.0), 4)


def rank(hints: CatalogHints, devices: Iterable[CatalogDevice]) -> list[tuple[CatalogDevice, float]]:
    """Eligible devices sorted by score desc, then scan_count desc."""
    scored = [(d, relevance(hints, d)) for d in devices]
    scored = [(d, s) for d, s in scored if s > 0.0]
    scored.sort(key=lambda pair: (-pair[1], -pair[0].scan_count))
    return scored

# src/identification/context.py — v1
"""Explicit per-request dependencies for the resolution engine."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from scavy.cache.resolver import CacheTierResolver
from scavy.catalog.resolver import CatalogTierResolver
from scavy.config.settings import Settings
from scavy.disclosure.store import DisclosureStore
from scavy.identification.ai_tier import AIResolutionTier
from scavy.storage.database import Database
from scavy.submissions.workflow import SubmissionWorkflow
from scavy.tracking.scan_logger import ScanLogger


@dataclass
class ResolverContext:
    """Everything a resolution needs; no module-level clients or globals."""

    settings: Settings
    cache: CacheTierResolver
    ai: AIResolutionTier
    telemetry: ScanLogger
    catalog: CatalogTierResolver | None = None
    submissions: SubmissionWorkflow | None = None
    disclosure_store: DisclosureStore | None = None
    database: Database | None = None
    user_id: str | None = None

    def for_user(self, user_id: str | None) -> ResolverContext:
        """Same stores and providers, different requesting user."""
        return dataclasses.replace(self, user_id=user_id)

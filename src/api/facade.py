# src/api/facade.py — v2
"""Public API facade: single entry point for identification.

Usage:
    from scavy.api.facade import build_context, resolve
    context = build_context()
    result = await resolve(IdentificationRequest(images=[...]), context)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scavy.cache.cache_factory import create_cache_store
from scavy.cache.resolver import CacheTierResolver
from scavy.catalog.resolver import CatalogTierResolver
from scavy.catalog.store import CatalogStore
from scavy.config.settings import Settings
from scavy.core.models import IdentificationRequest, IdentificationResult
from scavy.disclosure.controller import DisclosureController
from scavy.disclosure.store import DisclosureStore
from scavy.identification.ai_tier import AIResolutionTier
from scavy.identification.context import ResolverContext
from scavy.identification.engine import ResolutionEngine
from scavy.llm.client_factory import ProviderRegistry
from scavy.storage.database import Database
from scavy.submissions.store import SubmissionStore
from scavy.submissions.workflow import SubmissionWorkflow
from scavy.tracking.scan_log_store import ScanLogStore
from scavy.tracking.scan_logger import ScanLogger

if TYPE_CHECKING:
    from scavy.cache.base_cache_store import BaseCacheStore
    from scavy.llm.base_client import BaseVisionProvider

logger = logging.getLogger(__name__)


def build_context(
    settings: Settings | None = None,
    database: Database | None = None,
    providers: dict[str, BaseVisionProvider] | None = None,
    cache_store: BaseCacheStore | None = None,
) -> ResolverContext:
    """Wire every store and tier for one deployment.

    Args:
        settings: Global settings. Loaded from .env if None.
        database: Shared SQLite database. Opened at ``settings.database_path`` if None.
        providers: Pre-built vision providers keyed by name (bypasses API-key lookup).
        cache_store: Cache backend. Built from ``settings.cache_backend`` if None.

    Returns:
        A ResolverContext sharing one database across all stores.
    """
    settings = settings or Settings()
    database = database or Database(settings.database_path)

    cache_store = cache_store or create_cache_store(settings, database)
    catalog_store = CatalogStore(database)
    registry = ProviderRegistry(settings, providers)

    context = ResolverContext(
        settings=settings,
        database=database,
        cache=CacheTierResolver(cache_store, ttl_days=settings.cache_ttl_days),
        catalog=CatalogTierResolver(
            catalog_store,
            min_relevance=settings.catalog_min_relevance,
            candidate_limit=settings.catalog_candidate_limit,
            default_age_years=settings.catalog_default_device_age_years,
            default_depreciation_rate=settings.catalog_default_depreciation_rate,
        ),
        ai=AIResolutionTier(registry, settings),
        telemetry=ScanLogger(ScanLogStore(database), enabled=settings.telemetry_enabled),
        submissions=SubmissionWorkflow(
            SubmissionStore(database), catalog_store, auto_approve=settings.submission_auto_approve
        ),
        disclosure_store=DisclosureStore(database),
    )
    logger.debug(
        "Context ready: db=%s cache=%s providers=%s",
        database.path, settings.cache_backend, registry.configured(),
    )
    return context


async def resolve(request: IdentificationRequest, context: ResolverContext) -> IdentificationResult:
    """Identify the object in ``request.images`` via cache → catalog → AI.

    Returns a well-formed result on every tier outcome; AI failures are
    reported through ``message`` and ``error_kind`` with ``items == []``.

    Raises:
        InvalidImageError: If an image cannot be decoded or is too small.
    """
    if request.user_id is None and context.user_id is not None:
        request = request.model_copy(update={"user_id": context.user_id})
    return await ResolutionEngine(context).resolve(request)


def disclosure(context: ResolverContext) -> DisclosureController:
    """Progressive disclosure controller bound to ``context``."""
    return DisclosureController(context)

# src/identification/engine.py — v2
"""Resolution engine: cache → catalog → AI, cheapest sufficient tier first.

Every path returns a well-formed ``IdentificationResult`` and emits exactly
one scan log row. Only the AI tier can fail visibly, and it does so through
``message``/``error_kind`` on the result rather than by raising.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import uuid

from scavy.cache.fingerprint import compute_fingerprint
from scavy.cache.models import StoreStatus
from scavy.catalog.models import CatalogHints, CatalogMatch
from scavy.core.errors import ErrorKind
from scavy.core.models import IdentificationRequest, IdentificationResult
from scavy.identification.ai_tier import AIOutcome
from scavy.identification.context import ResolverContext
from scavy.imaging.normalizer import normalize_images
from scavy.llm.models import ImageInput
from scavy.logging.context import set_request_context, set_resolution_context
from scavy.submissions.models import SubmissionType
from scavy.tracking.cost_calculator import estimate_scan_cost
from scavy.tracking.models import ScanLog
from scavy.tracking.timer import StageTimer

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """Routes one identification request through the tiers."""

    def __init__(self, context: ResolverContext) -> None:
        self._ctx = context
        self._settings = context.settings

    async def resolve(self, request: IdentificationRequest) -> IdentificationResult:
        """Resolve a request from the cheapest tier that can answer it.

        Raises:
            InvalidImageError: If an image cannot be decoded or is too small.
        """
        ctx = self._ctx
        s = self._settings
        user_id = request.user_id or ctx.user_id
        set_request_context(uuid.uuid4().hex[:12], user_id)
        timer = StageTimer()

        with timer.stage("normalize"):
            images = normalize_images(
                request.images, s.image_max_dimension, s.image_jpeg_quality, s.image_min_base64_chars
            )
        with timer.stage("fingerprint"):
            fingerprint = compute_fingerprint(images)
        set_resolution_context(fingerprint=fingerprint[:12])

        # --- Tier 1: cache ---
        with timer.stage("cache"):
            cached = await ctx.cache.lookup(fingerprint)
        if cached is not None:
            set_resolution_context(tier="cache")
            self._emit(ScanLog(
                user_id=user_id,
                fingerprint=fingerprint,
                device_name=cached.parent_object or None,
                tier="cache",
                stage_timings=timer.snapshot(),
                cost_usd=0.0,
                cost_saved_usd=self._full_scan_estimate(request.provider),
                component_count=len(cached.items),
            ))
            return cached

        # --- Tier 2: catalog ---
        quick: AIOutcome | None = None
        with timer.stage("catalog"):
            match, quick = await self._catalog_lookup(images, request)
        if match is not None:
            set_resolution_context(tier="database")
            quick_cost = quick.cost_usd if quick else 0.0
            self._emit(ScanLog(
                user_id=user_id,
                fingerprint=fingerprint,
                device_name=match.device.device_name,
                tier="database",
                stage_timings=timer.snapshot(),
                provider=quick.provider if quick else None,
                model=quick.model if quick else None,
                input_tokens=quick.input_tokens if quick else 0,
                output_tokens=quick.output_tokens if quick else 0,
                cost_usd=quick_cost,
                cost_saved_usd=max(0.0, self._full_scan_estimate(request.provider) - quick_cost),
                component_count=len(match.result.items),
            ))
            return match.result

        # --- Tier 3: AI ---
        set_resolution_context(tier="ai")
        with timer.stage("ai"):
            # The paid call and its cache write finish even if our caller is cancelled.
            task = asyncio.ensure_future(self._identify_and_store(images, fingerprint, request, user_id))
            outcome, store_status = await asyncio.shield(task)

        extra_in = quick.input_tokens if quick else 0
        extra_out = quick.output_tokens if quick else 0
        extra_cost = quick.cost_usd if quick else 0.0
        result = outcome.result
        error_kind = outcome.error_kind.value if outcome.error_kind else None
        error_message = outcome.error_message
        if store_status == "failed":
            # The answer is still served; only the cache write is lost.
            error_kind = ErrorKind.STORAGE_WRITE_FAILURE.value
            error_message = "Cache write failed"
        self._emit(ScanLog(
            user_id=user_id,
            fingerprint=fingerprint,
            device_name=result.parent_object or None,
            tier="ai",
            stage_timings=timer.snapshot(),
            success=outcome.success,
            error_kind=error_kind,
            error_message=error_message,
            provider=outcome.provider,
            model=outcome.model,
            input_tokens=outcome.input_tokens + extra_in,
            output_tokens=outcome.output_tokens + extra_out,
            cost_usd=round(outcome.cost_usd + extra_cost, 6),
            component_count=len(result.items),
        ))
        return result

    # --- Internal helpers ---

    async def _catalog_lookup(
        self, images: list[ImageInput], request: IdentificationRequest
    ) -> tuple[CatalogMatch | None, AIOutcome | None]:
        catalog = self._ctx.catalog
        if catalog is None or not self._settings.catalog_enabled:
            return None, None

        hints = CatalogHints.from_text(request.hint)
        if not hints.is_empty:
            match = await catalog.lookup(hints)
            if match is not None:
                return match, None

        if not self._settings.catalog_quick_identify:
            return None, None
        try:
            if await catalog.store.count_devices() == 0:
                return None, None
        except Exception:
            logger.warning("Catalog unavailable, skipping quick identification", exc_info=True)
            return None, None

        identity, quick = await self._ctx.ai.identify_device(images, request.hint, request.provider)
        if identity is None:
            return None, quick
        logger.debug("Quick identification: %s", identity.model_dump())
        match = await catalog.lookup(CatalogHints.from_identity(identity, request.hint))
        return match, quick

    async def _identify_and_store(
        self,
        images: list[ImageInput],
        fingerprint: str,
        request: IdentificationRequest,
        user_id: str | None,
    ) -> tuple[AIOutcome, StoreStatus | None]:
        outcome = await self._ctx.ai.identify(images, request.hint, request.provider)
        if not outcome.success or not outcome.result.items:
            return outcome, None

        status = await self._ctx.cache.store(fingerprint, outcome.result)
        if status == "already_exists":
            # Another request cached this image first; serve its answer.
            earlier = await self._ctx.cache.lookup(fingerprint)
            if earlier is not None:
                logger.info("Lost cache race for %s, returning stored result", fingerprint[:12])
                return dataclasses.replace(outcome, result=earlier), status
            return outcome, status

        workflow = self._ctx.submissions
        if workflow is not None and self._settings.submission_auto_submit:
            try:
                await workflow.submit(
                    outcome.result,
                    user_id=user_id,
                    submission_type=SubmissionType.NEW_DEVICE,
                    fingerprint=fingerprint,
                )
            except Exception:
                logger.warning("Auto-submission failed for %s", fingerprint[:12], exc_info=True)
        return outcome, status

    def _full_scan_estimate(self, provider: str | None) -> float:
        s = self._settings
        configured = self._ctx.ai.registry.configured()
        name = provider or s.ai_default_provider or (configured[0] if configured else "")
        if name not in ("openai", "gemini", "claude"):
            return 0.0
        return estimate_scan_cost(s.model_for(name))

    def _emit(self, log: ScanLog) -> None:
        if not self._settings.telemetry_enabled:
            return
        try:
            self._ctx.telemetry.record(log)
        except Exception:
            logger.warning("Failed to schedule scan log", exc_info=True)
        logger.info(
            "Resolved via %s in %.0fms (cost $%.6f, %d components)",
            log.tier, log.stage_timings.total, log.cost_usd, log.component_count,
        )


async def resolve(request: IdentificationRequest, context: ResolverContext) -> IdentificationResult:
    """Resolve one request with the given context."""
    return await ResolutionEngine(context).resolve(request)

# src/disclosure/controller.py — v1
"""Progressive disclosure: identity → component list → one component's detail.

Each stage checks its own store, then the catalog, then makes the cheapest AI
call that answers it. Stage 2 needs a stage-1 identity and stage 3 needs a
component from the stage-2 list; anything else raises ``StageOrderError``.
AI spend is therefore bounded by "device + list" plus one call per component
the user actually opens.
"""

from __future__ import annotations

import logging
import uuid

from scavy.cache.fingerprint import compute_fingerprint
from scavy.catalog.converter import component_to_item
from scavy.catalog.models import CatalogDevice, CatalogHints
from scavy.core.errors import StageOrderError
from scavy.core.models import DeviceIdentity, ImagePayload, Stage, Tier, normalize_key
from scavy.disclosure.models import (
    ComponentDetailStage,
    ComponentListStage,
    ComponentStub,
    DisclosureSession,
    IdentityStage,
    StageSource,
)
from scavy.disclosure.store import DisclosureStore
from scavy.identification.ai_tier import AIOutcome
from scavy.identification.context import ResolverContext
from scavy.imaging.normalizer import normalize_images
from scavy.logging.context import set_request_context, set_resolution_context
from scavy.tracking.models import ScanLog
from scavy.tracking.timer import StageTimer

logger = logging.getLogger(__name__)

_TIER_BY_SOURCE: dict[StageSource, Tier] = {"store": "cache", "database": "database", "ai": "ai"}


class DisclosureController:
    """Runs the three disclosure stages against a ``DisclosureSession``."""

    def __init__(self, context: ResolverContext) -> None:
        if context.disclosure_store is None:
            raise ValueError("ResolverContext.disclosure_store is required for progressive disclosure")
        self._ctx = context
        self._store: DisclosureStore = context.disclosure_store

    def new_session(
        self, hint: str | None = None, provider: str | None = None, user_id: str | None = None
    ) -> DisclosureSession:
        return DisclosureSession(hint=hint, provider=provider, user_id=user_id or self._ctx.user_id)

    # --- Stage 1 ---

    async def identify(self, session: DisclosureSession, images: list[ImagePayload]) -> IdentityStage:
        """Stage 1: device identity for the pictured object.

        Raises:
            InvalidImageError: If an image cannot be decoded or is too small.
        """
        s = self._ctx.settings
        timer = StageTimer()
        set_request_context(uuid.uuid4().hex[:12], session.user_id)
        set_resolution_context(stage="identity")

        with timer.stage("normalize"):
            normalized = normalize_images(
                images, s.image_max_dimension, s.image_jpeg_quality, s.image_min_base64_chars
            )
        with timer.stage("fingerprint"):
            fingerprint = compute_fingerprint(normalized)
        session.fingerprint = fingerprint
        set_resolution_context(fingerprint=fingerprint[:12])

        with timer.stage("cache"):
            stored = await self._safe(self._store.get_identity(fingerprint), "stage-1 store read")
        if stored is not None:
            identity, device_id = stored
            stage = IdentityStage(
                fingerprint=fingerprint, identity=identity, device_id=device_id, source="store"
            )
            return self._finish_identity(session, stage, timer)

        with timer.stage("catalog"):
            device = await self._catalog_device(CatalogHints.from_text(session.hint))
        if device is not None:
            stage = IdentityStage(
                fingerprint=fingerprint,
                identity=_device_identity(device),
                device_id=device.id,
                source="database",
            )
            return self._finish_identity(session, stage, timer)

        with timer.stage("ai"):
            identity, outcome = await self._ctx.ai.identify_device(
                normalized, session.hint, session.provider
            )
        if identity is None:
            stage = IdentityStage(
                fingerprint=fingerprint,
                source="ai",
                error_kind=outcome.error_kind.value if outcome.error_kind else "parse_failure",
                message=outcome.result.message,
            )
            return self._finish_identity(session, stage, timer, outcome)

        # A catalog device may exist under the identity the AI just produced.
        device = await self._catalog_device(CatalogHints.from_identity(identity))
        await self._safe(
            self._store.put_identity(fingerprint, identity, device.id if device else None),
            "stage-1 store write",
        )
        stage = IdentityStage(
            fingerprint=fingerprint,
            identity=identity,
            device_id=device.id if device else None,
            source="ai",
        )
        return self._finish_identity(session, stage, timer, outcome)

    # --- Stage 2 ---

    async def list_components(self, session: DisclosureSession) -> ComponentListStage:
        """Stage 2: component names for the identified device.

        Raises:
            StageOrderError: If stage 1 has not produced an identity.
        """
        if session.identity is None or session.identity.identity is None:
            raise StageOrderError("component list requested before the device was identified")
        identity = session.identity.identity
        key = identity.key
        timer = StageTimer()
        set_resolution_context(stage="components")

        with timer.stage("cache"):
            stored = await self._safe(self._store.get_component_list(key), "stage-2 store read")
        if stored:
            stage = ComponentListStage(identity_key=key, components=stored, source="store")
            return self._finish_list(session, stage, timer)

        with timer.stage("catalog"):
            device = await self._identity_device(session)
        if device is not None and device.components:
            stubs = [
                ComponentStub(component_name=c.component_name, category=c.category, quantity=c.quantity)
                for c in device.components
            ]
            stage = ComponentListStage(identity_key=key, components=stubs, source="database")
            return self._finish_list(session, stage, timer)

        with timer.stage("ai"):
            stubs, outcome = await self._ctx.ai.list_components(identity, session.provider)
        if stubs is None:
            stage = ComponentListStage(
                identity_key=key,
                source="ai",
                error_kind=outcome.error_kind.value if outcome.error_kind else "parse_failure",
                message=outcome.result.message,
            )
            return self._finish_list(session, stage, timer, outcome)

        await self._safe(self._store.put_component_list(key, stubs), "stage-2 store write")
        stage = ComponentListStage(identity_key=key, components=stubs, source="ai")
        return self._finish_list(session, stage, timer, outcome)

    # --- Stage 3 ---

    async def describe_component(
        self, session: DisclosureSession, component_name: str
    ) -> ComponentDetailStage:
        """Stage 3: full detail for one component the user opened.

        Raises:
            StageOrderError: If the component is not in the stage-2 list.
        """
        if session.component_list is None or session.identity is None or session.identity.identity is None:
            raise StageOrderError("component detail requested before the component list")
        stub = session.find_listed(component_name)
        if stub is None:
            raise StageOrderError(f"component {component_name!r} is not in the listed components")

        identity = session.identity.identity
        identity_key = identity.key
        component_key = stub.key
        session.opened.add(component_key)
        timer = StageTimer()
        set_resolution_context(stage="detail")

        with timer.stage("cache"):
            stored = await self._safe(
                self._store.get_component_detail(identity_key, component_key), "stage-3 store read"
            )
        if stored is not None:
            stage = ComponentDetailStage(
                identity_key=identity_key, component_key=component_key, detail=stored, source="store"
            )
            return self._finish_detail(session, stage, timer)

        with timer.stage("catalog"):
            device = await self._identity_device(session)
        match = None
        if device is not None:
            match = next(
                (c for c in device.components if normalize_key(c.component_name) == component_key),
                None,
            )
        if match is not None:
            s = self._ctx.settings
            item = component_to_item(
                match,
                device.estimated_device_age_years or s.catalog_default_device_age_years,
                s.catalog_default_depreciation_rate,
            )
            stage = ComponentDetailStage(
                identity_key=identity_key, component_key=component_key, detail=item, source="database"
            )
            return self._finish_detail(session, stage, timer)

        with timer.stage("ai"):
            detail, outcome = await self._ctx.ai.describe_component(
                identity, stub.component_name, session.provider
            )
        if detail is None:
            stage = ComponentDetailStage(
                identity_key=identity_key,
                component_key=component_key,
                source="ai",
                error_kind=outcome.error_kind.value if outcome.error_kind else "parse_failure",
                message=outcome.result.message,
            )
            return self._finish_detail(session, stage, timer, outcome)

        await self._safe(
            self._store.put_component_detail(identity_key, component_key, detail), "stage-3 store write"
        )
        stage = ComponentDetailStage(
            identity_key=identity_key, component_key=component_key, detail=detail, source="ai"
        )
        return self._finish_detail(session, stage, timer, outcome)

    # --- Internal helpers ---

    async def _catalog_device(self, hints: CatalogHints) -> CatalogDevice | None:
        catalog = self._ctx.catalog
        if catalog is None or not self._ctx.settings.catalog_enabled or hints.is_empty:
            return None
        best = await catalog.best_device(hints)
        return best[0] if best else None

    async def _identity_device(self, session: DisclosureSession) -> CatalogDevice | None:
        catalog = self._ctx.catalog
        if catalog is None or not self._ctx.settings.catalog_enabled:
            return None
        stage = session.identity
        try:
            if stage.device_id is not None:
                return await catalog.store.get_device(stage.device_id)
            identity = stage.identity
            device = await catalog.store.find_by_identity(
                identity.manufacturer, identity.model, identity.device_name
            )
            if device is not None:
                device.components = await catalog.store.get_components(device.id)
            return device
        except Exception:
            logger.warning("Catalog read failed during disclosure, treating as miss", exc_info=True)
            return None

    @staticmethod
    async def _safe(awaitable, what: str):
        try:
            return await awaitable
        except Exception:
            logger.warning("Disclosure %s failed", what, exc_info=True)
            return None

    def _finish_identity(
        self,
        session: DisclosureSession,
        stage: IdentityStage,
        timer: StageTimer,
        outcome: AIOutcome | None = None,
    ) -> IdentityStage:
        if stage.ok:
            session.identity = stage
            session.component_list = None
            session.opened.clear()
        name = stage.identity.device_name if stage.identity else None
        self._emit(session, "identity", stage.source, stage.ok, timer, outcome, name, 0)
        return stage

    def _finish_list(
        self,
        session: DisclosureSession,
        stage: ComponentListStage,
        timer: StageTimer,
        outcome: AIOutcome | None = None,
    ) -> ComponentListStage:
        if stage.ok:
            session.component_list = stage
        name = session.identity.identity.device_name
        self._emit(session, "components", stage.source, stage.ok, timer, outcome, name, len(stage.components))
        return stage

    def _finish_detail(
        self,
        session: DisclosureSession,
        stage: ComponentDetailStage,
        timer: StageTimer,
        outcome: AIOutcome | None = None,
    ) -> ComponentDetailStage:
        name = session.identity.identity.device_name
        self._emit(session, "detail", stage.source, stage.ok, timer, outcome, name, 1 if stage.ok else 0)
        return stage

    def _emit(
        self,
        session: DisclosureSession,
        stage: Stage,
        source: StageSource | None,
        success: bool,
        timer: StageTimer,
        outcome: AIOutcome | None,
        device_name: str | None,
        component_count: int,
    ) -> None:
        tier = _TIER_BY_SOURCE[source or "ai"]
        set_resolution_context(tier=tier)
        logger.info("Disclosure stage %s answered by %s", stage, source)
        if not self._ctx.settings.telemetry_enabled:
            return
        log = ScanLog(
            user_id=session.user_id,
            fingerprint=session.fingerprint,
            device_name=device_name,
            tier=tier,
            stage=stage,
            stage_timings=timer.snapshot(),
            success=success,
            component_count=component_count,
        )
        if outcome is not None:
            log = log.model_copy(update={
                "error_kind": outcome.error_kind.value if outcome.error_kind else None,
                "error_message": outcome.error_message,
                "provider": outcome.provider,
                "model": outcome.model,
                "input_tokens": outcome.input_tokens,
                "output_tokens": outcome.output_tokens,
                "cost_usd": outcome.cost_usd,
            })
        try:
            self._ctx.telemetry.record(log)
        except Exception:
            logger.warning("Failed to schedule disclosure scan log", exc_info=True)


def _device_identity(device: CatalogDevice) -> DeviceIdentity:
    return DeviceIdentity(
        device_name=device.device_name,
        category=device.category,
        manufacturer=device.brand,
        model=device.model,
        confidence=device.confidence_score,
    )

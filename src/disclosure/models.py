# src/disclosure/models.py — v3
"""Progressive disclosure models: stage payloads and per-session progress."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from scavy.core.models import ComponentCategory, ComponentItem, DeviceIdentity, normalize_key

StageSource = Literal["store", "database", "ai"]


class ComponentStub(BaseModel):
    """Stage-2 entry: a component name without detail."""

    component_name: str
    category: ComponentCategory = "Other"
    quantity: int = Field(default=1, ge=1)

    @property
    def key(self) -> str:
        return normalize_key(self.component_name)


class StageOutcome(BaseModel):
    """Fields shared by every stage answer; failures carry a message instead of a payload."""

    source: StageSource | None = None
    error_kind: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


class IdentityStage(StageOutcome):
    fingerprint: str
    identity: DeviceIdentity | None = None
    device_id: int | None = None


class ComponentListStage(StageOutcome):
    identity_key: str
    components: list[ComponentStub] = Field(default_factory=list)


class ComponentDetailStage(StageOutcome):
    identity_key: str
    component_key: str
    detail: ComponentItem | None = None


class DisclosureSession(BaseModel):
    """Progress of one user through the three disclosure stages."""

    fingerprint: str | None = None
    hint: str | None = None
    provider: str | None = None
    user_id: str | None = None
    identity: IdentityStage | None = None
    component_list: ComponentListStage | None = None
    opened: set[str] = Field(default_factory=set)

    def find_listed(self, component_name: str) -> ComponentStub | None:
        if self.component_list is None:
            return None
        key = normalize_key(component_name)
        for stub in self.component_list.components:
            if stub.key == key:
                return stub
        return None

# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a scripted vision provider, real JPEG payloads, an in-memory
database and a fully wired ResolverContext. No network access.
"""

from __future__ import annotations

import asyncio
import base64
import io
import json
from typing import Any

import pytest
from PIL import Image

from scavy.api.facade import build_context
from scavy.catalog.models import CatalogComponent, CatalogDevice
from scavy.config.settings import Settings
from scavy.core.models import ImagePayload
from scavy.identification.context import ResolverContext
from scavy.llm.base_client import BaseVisionProvider
from scavy.llm.models import ImageInput, LLMResponse, Message
from scavy.storage.database import Database


# === Helpers ===


def make_jpeg_base64(color: tuple[int, int, int] = (200, 30, 30), size: tuple[int, int] = (64, 48)) -> str:
    """Small real JPEG encoded as base64."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG", quality=90)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def identification_json(
    parent_object: str = "Sony WH-1000XM4 Headphones",
    n_items: int = 3,
) -> str:
    items = [
        {
            "component_name": f"Component {i}",
            "category": "ICs/Chips" if i % 2 == 0 else "Audio",
            "specifications": {"package": "QFN"},
            "reusability_score": 7,
            "market_value_low": 1.0 + i,
            "market_value_high": 3.0 + i,
            "condition": "Good",
            "confidence": 0.8,
            "description": f"Part number {i}",
            "common_uses": ["repairs", "prototyping"],
            "quantity": 1,
        }
        for i in range(n_items)
    ]
    return json.dumps({
        "parent_object": parent_object,
        "items": items,
        "total_estimated_value_low": sum(1.0 + i for i in range(n_items)),
        "total_estimated_value_high": sum(3.0 + i for i in range(n_items)),
        "salvage_difficulty": "Medium",
        "tools_needed": ["Phillips #00 screwdriver", "Spudger"],
    })


class MockVisionProvider(BaseVisionProvider):
    """Scripted provider: returns queued responses (or raises queued errors).

    When the queue holds a single entry it is reused for every call.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        name: str = "gemini",
        model: str = "gemini-1.5-flash",
        input_tokens: int = 1200,
        output_tokens: int = 800,
        delay_s: float = 0.0,
    ) -> None:
        self._responses = list(responses or [identification_json()])
        self._name = name
        self._model = model
        self._input_tokens = input_tokens
        self._output_tokens = output_tokens
        self._delay_s = delay_s
        self.calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> LLMResponse:
        self.calls.append({"messages": messages, "images": images, "system": system})
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        item = self._responses[0] if len(self._responses) == 1 else self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(
            content=item,
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
            model=self._model,
            provider=self._name,
            latency_ms=int(self._delay_s * 1000),
        )

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def model_name(self) -> str:
        return self._model


# === FIXTURES: Settings & storage ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        google_ai_api_key="",
        anthropic_api_key="",
        ai_default_provider="",
        ai_retry_delay_s=0.0,
        catalog_quick_identify=False,
        telemetry_enabled=True,
    )


@pytest.fixture
def database() -> Database:
    db = Database(":memory:")
    yield db
    db.close()


# === FIXTURES: Images ===


@pytest.fixture
def jpeg_b64() -> str:
    return make_jpeg_base64()


@pytest.fixture
def image_payload(jpeg_b64: str) -> ImagePayload:
    return ImagePayload(mime_type="image/jpeg", base64=jpeg_b64)


# === FIXTURES: Providers & context ===


@pytest.fixture
def mock_provider() -> MockVisionProvider:
    return MockVisionProvider()


@pytest.fixture
def context(settings: Settings, database: Database, mock_provider: MockVisionProvider) -> ResolverContext:
    """Fully wired context backed by one in-memory database."""
    return build_context(settings, database=database, providers={"gemini": mock_provider})


@pytest.fixture
def sample_device() -> CatalogDevice:
    return CatalogDevice(
        device_name="Nintendo Switch Console",
        brand="Nintendo",
        model="HAC-001",
        category="Gaming",
        aliases=["switch"],
        verified=True,
        confidence_score=0.95,
        disassembly_difficulty="Medium",
        tools_required=["Tri-wing screwdriver"],
        safety_warnings=["Disconnect the battery first"],
        components=[
            CatalogComponent(
                component_name="NVIDIA Tegra X1 SoC",
                category="ICs/Chips",
                market_value_new=40.0,
                depreciation_rate=0.1,
                reusability_score=6,
            ),
            CatalogComponent(
                component_name="Joy-Con Rail Connector",
                category="Connectors",
                market_value_low=2.0,
                market_value_high=5.0,
            ),
        ],
    )


@pytest.fixture
def jpeg_factory():
    """Callable building base64 JPEGs of a given color and size."""
    return make_jpeg_base64


@pytest.fixture
def identification_factory():
    """Callable building a valid identification JSON answer."""
    return identification_json


@pytest.fixture
def provider_factory():
    """Callable building MockVisionProvider instances."""
    return MockVisionProvider

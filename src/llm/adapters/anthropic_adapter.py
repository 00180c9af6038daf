# src/llm/adapters/anthropic_adapter.py — v3
"""Anthropic Claude adapter implementing BaseVisionProvider.

Uses the official anthropic SDK. Images are sent as base64 content blocks
ahead of the user text.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from scavy.llm.base_client import BaseVisionProvider
from scavy.llm.models import ImageInput, LLMResponse, Message
from scavy.llm.retry import to_provider_error

logger = logging.getLogger(__name__)


class ClaudeAdapter(BaseVisionProvider):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-3-haiku-20240307",
        api_key: str | None = None,
        timeout_s: float = 60.0,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key or "", timeout=self._timeout_s, max_retries=0
            )
        return self.__client

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Vision-enabled completion with images."""
        content_blocks: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": img.media_type,
                    "data": base64.b64encode(img.data).decode("ascii"),
                },
            }
            for img in images
        ]
        user_text = "\n\n".join(m.content for m in messages if m.role == "user")
        content_blocks.append({"type": "text", "text": user_text})

        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content_blocks}],
        }
        if system:
            params["system"] = system

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**params)
        except Exception as e:
            raise to_provider_error(self.provider_name, e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=self._extract_text(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider=self.provider_name,
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "claude"

    @property
    def model_name(self) -> str:
        return self._model

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate text blocks from an Anthropic response."""
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

# src/llm/adapters/google_adapter.py — v2
"""Google Gemini adapter implementing BaseVisionProvider.

Uses google-generativeai SDK. JSON output is requested through
``response_mime_type``.
"""

from __future__ import annotations

import time
from typing import Any

from scavy.llm.base_client import BaseVisionProvider
from scavy.llm.models import ImageInput, LLMResponse, Message
from scavy.llm.retry import to_provider_error


class GeminiAdapter(BaseVisionProvider):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-1.5-flash",
        api_key: str = "",
        timeout_s: float = 60.0,
        **kwargs: Any,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._timeout_s = timeout_s

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model, system_instruction=system)

        parts: list[dict[str, Any]] = []
        for m in messages:
            parts.append({"text": m.content})
        for img in images:
            parts.append({"inline_data": {"mime_type": img.media_type, "data": img.data}})

        t0 = time.monotonic()
        try:
            resp = await model.generate_content_async(
                parts,
                generation_config={
                    "max_output_tokens": max_tokens,
                    "temperature": temperature,
                    "response_mime_type": "application/json",
                },
                request_options={"timeout": self._timeout_s},
            )
            text = resp.text or ""
        except Exception as e:
            raise to_provider_error(self.provider_name, e) from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def model_name(self) -> str:
        return self._model

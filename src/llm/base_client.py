# src/llm/base_client.py — v2
"""Abstract vision provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scavy.llm.models import ImageInput, LLMResponse, Message


class BaseVisionProvider(ABC):
    """Unified interface for all vision-capable AI providers.

    Implementations raise ``ProviderError`` with a classified ``ErrorKind``
    on any failure; they never retry on their own.
    """

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Vision-enabled completion (images + text)."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, gemini, claude)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model the adapter calls."""

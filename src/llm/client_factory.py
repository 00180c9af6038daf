# src/llm/client_factory.py — v4
"""Provider registry and selection strategy.

Adapters are imported lazily from ``_PROVIDER_REGISTRY`` so an unused
vendor SDK is never loaded. Selection order: explicit preference (when
configured) → configured default → first configured provider in cost
order.
"""

from __future__ import annotations

import importlib
import logging

from scavy.config.settings import Settings
from scavy.core.errors import ErrorKind, ProviderError
from scavy.llm.base_client import BaseVisionProvider

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "scavy.llm.adapters.openai_adapter.OpenAIAdapter",
    "gemini": "scavy.llm.adapters.google_adapter.GeminiAdapter",
    "claude": "scavy.llm.adapters.anthropic_adapter.ClaudeAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_provider(provider: str, settings: Settings, **kwargs: object) -> BaseVisionProvider:
    """Instantiate the adapter for a provider name from settings.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported AI provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )
    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])
    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("model", settings.model_for(provider))
    init_kwargs.setdefault("api_key", settings.api_key_for(provider))
    init_kwargs.setdefault("timeout_s", settings.ai_timeout_s)
    logger.debug("Creating provider: %s (%s)", provider, init_kwargs["model"])
    return adapter_cls(**init_kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


class ProviderRegistry:
    """Per-context set of usable providers.

    A provider is usable when it has an API key, or when an instance was
    injected directly (tests, custom deployments).
    """

    def __init__(
        self,
        settings: Settings,
        providers: dict[str, BaseVisionProvider] | None = None,
    ) -> None:
        self._settings = settings
        self._instances: dict[str, BaseVisionProvider] = dict(providers or {})

    def configured(self) -> list[str]:
        """Usable provider names in cost order."""
        order = self._settings.ai_provider_order_list
        names = [p for p in order if p in self._instances or self._settings.api_key_for(p)]
        names += [p for p in self._instances if p not in names]
        return names

    def is_configured(self, name: str) -> bool:
        return name in self.configured()

    def get(self, name: str) -> BaseVisionProvider:
        if name not in self._instances:
            if not self._settings.api_key_for(name):
                raise ProviderError(name, ErrorKind.NO_PROVIDER, "no API key configured")
            self._instances[name] = create_provider(name, self._settings)
        return self._instances[name]

    def select(self, preference: str | None = None) -> BaseVisionProvider:
        """Pick a provider: preference → default → cheapest configured."""
        return self.get(select_provider(preference, self._settings, self.configured()))


def select_provider(
    preference: str | None, settings: Settings, configured: list[str]
) -> str:
    """Choose a provider name from the configured set.

    Raises:
        ProviderError: With kind ``no_provider`` when nothing is configured.
    """
    if preference and preference in configured:
        return preference
    if preference:
        logger.warning("Requested provider %r is not configured, falling back", preference)
    default = settings.ai_default_provider
    if default and default in configured:
        return default
    if configured:
        return configured[0]
    raise ProviderError("none", ErrorKind.NO_PROVIDER, "no AI provider has an API key configured")

# src/identification/ai_tier.py — v1
"""AI tier: the only tier that spends money.

Selects a provider, sends the prompt with the normalised images, and turns
whatever comes back (valid JSON, wrapped JSON, garbage or an error) into an
``AIOutcome`` carrying a well-formed result plus usage and cost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scavy.config.settings import Settings
from scavy.core.errors import ErrorKind, ProviderError
from scavy.core.models import ComponentItem, DeviceIdentity, IdentificationResult
from scavy.disclosure.models import ComponentStub
from scavy.identification.validation import (
    ParseFailure,
    parse_component_detail,
    parse_component_list,
    parse_identification,
    parse_identity,
)
from scavy.llm import prompts
from scavy.llm.client_factory import ProviderRegistry
from scavy.llm.models import ImageInput, LLMResponse, Message
from scavy.llm.retry import RetryConfig, with_retry
from scavy.tracking.cost_calculator import compute_call_cost

logger = logging.getLogger(__name__)

_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: "The {provider} provider is rate limiting requests. Try again shortly or pick another provider.",
    ErrorKind.PROVIDER_EXHAUSTED: "The {provider} provider has no remaining credits. Pick another provider.",
    ErrorKind.TIMEOUT: "The {provider} provider did not answer in time. Please try again.",
    ErrorKind.NETWORK_ERROR: "Could not reach the {provider} provider. Please try again.",
    ErrorKind.NO_PROVIDER: "No AI provider is configured.",
    ErrorKind.PROVIDER_ERROR: "The {provider} provider returned an error.",
}

NO_COMPONENTS_MESSAGE = "No salvageable components were identified in this photo."


@dataclass
class AIOutcome:
    """Result of one AI-tier call with usage accounting."""

    result: IdentificationResult
    provider: str | None = None
    model: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    latency_ms: int = 0
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.error_kind is None


class AIResolutionTier:
    """Builds prompts, calls a provider and validates its answer."""

    def __init__(self, registry: ProviderRegistry, settings: Settings) -> None:
        self._registry = registry
        self._settings = settings
        self._retry = RetryConfig(
            max_retries=settings.ai_max_retries, delay_s=settings.ai_retry_delay_s
        )

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def identify(
        self,
        images: list[ImageInput],
        hint: str | None = None,
        provider: str | None = None,
    ) -> AIOutcome:
        """Full decomposition of the pictured object."""
        s = self._settings
        response, outcome = await self._call(
            provider,
            user_text=prompts.identification_user_prompt(len(images), hint, s.component_limit_min),
            images=images,
            system=prompts.identification_system_prompt(s.component_limit_min, s.component_limit_max),
            max_tokens=s.ai_max_tokens,
        )
        if response is None:
            return outcome

        parsed = parse_identification(response.content)
        if isinstance(parsed, ParseFailure):
            logger.warning("Parse failure from %s: %s", outcome.provider, parsed.reason)
            outcome.result = parsed.to_result()
            outcome.error_kind = ErrorKind.PARSE_FAILURE
            outcome.error_message = parsed.reason[:300]
            return outcome

        logger.info(
            "AI identified %r with %d components via %s",
            parsed.parent_object, len(parsed.items), outcome.provider,
        )
        if not parsed.items and not parsed.message:
            parsed.message = NO_COMPONENTS_MESSAGE
        outcome.result = parsed
        return outcome

    async def identify_device(
        self,
        images: list[ImageInput],
        hint: str | None = None,
        provider: str | None = None,
    ) -> tuple[DeviceIdentity | None, AIOutcome]:
        """Cheap identity-only call (catalog hints, disclosure stage 1)."""
        response, outcome = await self._call(
            provider,
            user_text=prompts.identity_user_prompt(hint),
            images=images,
            system=prompts.IDENTITY_SYSTEM,
            max_tokens=self._settings.ai_stage_max_tokens,
        )
        if response is None:
            return None, outcome
        identity = parse_identity(response.content)
        if identity is None:
            self._mark_parse_failure(outcome, response.content, "identity")
        return identity, outcome

    async def list_components(
        self, identity: DeviceIdentity, provider: str | None = None
    ) -> tuple[list[ComponentStub] | None, AIOutcome]:
        """Component names for a known device (disclosure stage 2)."""
        s = self._settings
        response, outcome = await self._call(
            provider,
            user_text=prompts.component_list_user_prompt(
                _describe(identity), s.component_limit_min, s.component_limit_max
            ),
            images=[],
            system=prompts.COMPONENT_LIST_SYSTEM,
            max_tokens=s.ai_stage_max_tokens,
        )
        if response is None:
            return None, outcome
        stubs = parse_component_list(response.content)
        if stubs is None:
            self._mark_parse_failure(outcome, response.content, "component list")
        return stubs, outcome

    async def describe_component(
        self, identity: DeviceIdentity, component_name: str, provider: str | None = None
    ) -> tuple[ComponentItem | None, AIOutcome]:
        """Full detail for one component (disclosure stage 3)."""
        response, outcome = await self._call(
            provider,
            user_text=prompts.component_detail_user_prompt(_describe(identity), component_name),
            images=[],
            system=prompts.COMPONENT_DETAIL_SYSTEM,
            max_tokens=self._settings.ai_stage_max_tokens,
        )
        if response is None:
            return None, outcome
        detail = parse_component_detail(response.content)
        if detail is None:
            self._mark_parse_failure(outcome, response.content, "component detail")
        return detail, outcome

    # --- Internal helpers ---

    async def _call(
        self,
        preference: str | None,
        user_text: str,
        images: list[ImageInput],
        system: str,
        max_tokens: int,
    ) -> tuple[LLMResponse | None, AIOutcome]:
        outcome = AIOutcome(result=IdentificationResult())
        try:
            client = self._registry.select(preference)
        except ProviderError as e:
            return None, _failed(outcome, e)

        outcome.provider = client.provider_name
        outcome.model = client.model_name
        try:
            response: LLMResponse = await with_retry(
                client.complete_with_vision,
                [Message(role="user", content=user_text)],
                images,
                system=system,
                max_tokens=max_tokens,
                temperature=self._settings.ai_temperature,
                provider=client.provider_name,
                config=self._retry,
            )
        except ProviderError as e:
            logger.warning("AI call failed: %s", e)
            return None, _failed(outcome, e)

        outcome.model = response.model or outcome.model
        outcome.input_tokens = response.input_tokens
        outcome.output_tokens = response.output_tokens
        outcome.latency_ms = response.latency_ms
        outcome.cost_usd = compute_call_cost(
            outcome.model, response.input_tokens, response.output_tokens
        )
        return response, outcome

    @staticmethod
    def _mark_parse_failure(outcome: AIOutcome, raw: str, what: str) -> None:
        logger.warning("Unparseable %s response from %s", what, outcome.provider)
        outcome.error_kind = ErrorKind.PARSE_FAILURE
        outcome.error_message = f"unparseable {what} response"
        outcome.result = IdentificationResult.failure(
            ErrorKind.PARSE_FAILURE.value, f"Could not read the {what} answer."
        ).model_copy(update={"raw_response": raw})


def _failed(outcome: AIOutcome, error: ProviderError) -> AIOutcome:
    template = _ERROR_MESSAGES.get(error.kind, _ERROR_MESSAGES[ErrorKind.PROVIDER_ERROR])
    outcome.provider = outcome.provider or (error.provider if error.provider != "none" else None)
    outcome.error_kind = error.kind
    outcome.error_message = str(error)[:300]
    outcome.result = IdentificationResult.failure(
        error.kind.value, template.format(provider=outcome.provider or "AI")
    )
    return outcome


def _describe(identity: DeviceIdentity) -> str:
    parts = [identity.manufacturer, identity.model]
    label = " ".join(p for p in parts if p)
    if label and label.lower() not in identity.device_name.lower():
        return f"{identity.device_name} ({label})"
    return identity.device_name

# tests/unit/llm/test_unit_adapters.py — v1
"""Tests for llm/adapters — request shaping and error wrapping with mocked SDKs."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scavy.core.errors import ErrorKind, ProviderError
from scavy.llm.adapters.anthropic_adapter import ClaudeAdapter
from scavy.llm.adapters.google_adapter import GeminiAdapter
from scavy.llm.adapters.openai_adapter import OpenAIAdapter
from scavy.llm.models import ImageInput, Message

_MESSAGES = [Message(role="user", content="Identify this")]
_IMAGES = [ImageInput(data=b"\xff\xd8jpeg", media_type="image/jpeg")]


class _StatusError(Exception):
    def __init__(self, msg: str, status_code: int) -> None:
        super().__init__(msg)
        self.status_code = status_code


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_request_and_usage(self):
        resp = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"parent_object": "x"}'))],
            usage=SimpleNamespace(prompt_tokens=900, completion_tokens=300),
        )
        adapter = OpenAIAdapter(model="gpt-4o-mini", api_key="k")
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=resp)
        adapter._client = client

        out = await adapter.complete_with_vision(_MESSAGES, _IMAGES, system="sys", max_tokens=100)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        image_part = kwargs["messages"][1]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")
        assert out.input_tokens == 900
        assert out.output_tokens == 300
        assert out.provider == "openai"

    @pytest.mark.asyncio
    async def test_error_wrapped(self):
        adapter = OpenAIAdapter(api_key="k")
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=_StatusError("quota", 429))
        adapter._client = client
        with pytest.raises(ProviderError) as exc:
            await adapter.complete_with_vision(_MESSAGES, _IMAGES)
        assert exc.value.kind is ErrorKind.RATE_LIMITED
        assert exc.value.provider == "openai"


class TestClaudeAdapter:
    @pytest.mark.asyncio
    async def test_image_blocks_before_text(self):
        resp = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='{"a": '), SimpleNamespace(type="text", text="1}")],
            usage=SimpleNamespace(input_tokens=50, output_tokens=5),
            model="claude-3-haiku-20240307",
        )
        adapter = ClaudeAdapter(api_key="k")
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=resp)
        adapter._ClaudeAdapter__client = client

        out = await adapter.complete_with_vision(_MESSAGES, _IMAGES, system="sys")

        kwargs = client.messages.create.call_args.kwargs
        blocks = kwargs["messages"][0]["content"]
        assert blocks[0]["type"] == "image"
        assert blocks[-1] == {"type": "text", "text": "Identify this"}
        assert kwargs["system"] == "sys"
        assert out.content == '{"a": 1}'
        assert out.model == "claude-3-haiku-20240307"

    @pytest.mark.asyncio
    async def test_billing_error(self):
        adapter = ClaudeAdapter(api_key="k")
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=Exception("Your credit balance is too low"))
        adapter._ClaudeAdapter__client = client
        with pytest.raises(ProviderError) as exc:
            await adapter.complete_with_vision(_MESSAGES, _IMAGES)
        assert exc.value.kind is ErrorKind.PROVIDER_EXHAUSTED


class TestGeminiAdapter:
    @pytest.mark.asyncio
    async def test_inline_images_and_json_mime(self):
        resp = SimpleNamespace(
            text='{"ok": true}',
            usage_metadata=SimpleNamespace(prompt_token_count=70, candidates_token_count=9),
        )
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=resp)
        with patch("google.generativeai.configure") as configure, \
                patch("google.generativeai.GenerativeModel", return_value=model) as ctor:
            out = await GeminiAdapter(model="gemini-1.5-flash", api_key="g").complete_with_vision(
                _MESSAGES, _IMAGES, system="sys"
            )
        configure.assert_called_once_with(api_key="g")
        ctor.assert_called_once_with("gemini-1.5-flash", system_instruction="sys")
        parts = model.generate_content_async.call_args.args[0]
        assert parts[1]["inline_data"]["mime_type"] == "image/jpeg"
        config = model.generate_content_async.call_args.kwargs["generation_config"]
        assert config["response_mime_type"] == "application/json"
        assert (out.input_tokens, out.output_tokens) == (70, 9)

    @pytest.mark.asyncio
    async def test_resource_exhausted_is_rate_limited(self):
        class ResourceExhausted(Exception):
            pass

        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=ResourceExhausted("quota"))
        with patch("google.generativeai.configure"), \
                patch("google.generativeai.GenerativeModel", return_value=model):
            with pytest.raises(ProviderError) as exc:
                await GeminiAdapter(api_key="g").complete_with_vision(_MESSAGES, _IMAGES)
        assert exc.value.kind is ErrorKind.RATE_LIMITED

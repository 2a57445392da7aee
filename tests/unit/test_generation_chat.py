"""Unit tests for the chat-completions text generator."""

from __future__ import annotations

import asyncio
import json
import typing as typ

import httpx
import pytest

from huddle.generation import (
    ChatCompletionConfig,
    ChatCompletionTextGenerator,
    EmptyGenerationError,
    GenerationAPIError,
    GenerationConfigError,
    GenerationResponseShapeError,
    GenerationTimeoutError,
)

_ENDPOINT = "https://llm.test/v1/chat/completions"


def _completion(content: str) -> dict[str, typ.Any]:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }


def _make_generator(
    handler: typ.Callable[[httpx.Request], httpx.Response],
    *,
    max_tokens: int = 2500,
) -> ChatCompletionTextGenerator:
    return ChatCompletionTextGenerator(
        ChatCompletionConfig(
            api_key="sk-test",
            endpoint=_ENDPOINT,
            model="test/model",
            max_tokens=max_tokens,
        ),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_generate_sends_single_user_message() -> None:
    """The prompt is sent as one user message with the token budget."""
    bodies: list[dict[str, typ.Any]] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=_completion("  organised  "))

    generator = _make_generator(_handler, max_tokens=300)

    text = asyncio.run(generator.generate("organise this"))

    assert text == "organised"
    assert bodies == [
        {
            "model": "test/model",
            "messages": [{"role": "user", "content": "organise this"}],
            "max_tokens": 300,
        }
    ]
    metrics = generator.last_invocation_metrics
    assert metrics is not None
    assert metrics.total_tokens == 17
    assert generator.label == "test/model"


def test_rate_limit_carries_retry_after() -> None:
    """A 429 maps to a rate-limit error with the Retry-After delay."""
    generator = _make_generator(
        lambda _r: httpx.Response(429, headers={"Retry-After": "30"})
    )

    with pytest.raises(GenerationAPIError, match="retry after 30s") as excinfo:
        asyncio.run(generator.generate("x"))
    assert excinfo.value.status_code == 429


def test_http_error_includes_status() -> None:
    """Error statuses raise GenerationAPIError."""
    generator = _make_generator(lambda _r: httpx.Response(503, text="overloaded"))

    with pytest.raises(GenerationAPIError, match="503: overloaded"):
        asyncio.run(generator.generate("x"))


def test_timeout_maps_to_generation_timeout() -> None:
    """Transport timeouts raise GenerationTimeoutError."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GenerationTimeoutError):
        asyncio.run(_make_generator(_handler).generate("x"))


def test_network_error_maps_to_api_error() -> None:
    """Connection failures raise GenerationAPIError."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationAPIError, match="network error"):
        asyncio.run(_make_generator(_handler).generate("x"))


@pytest.mark.parametrize(
    "payload",
    [{}, {"choices": []}, {"choices": [{"message": {}}]}, {"choices": ["bad"]}],
)
def test_malformed_body_raises_shape_error(payload: dict[str, typ.Any]) -> None:
    """Bodies without choices[0].message.content are rejected."""
    generator = _make_generator(lambda _r: httpx.Response(200, json=payload))

    with pytest.raises(GenerationResponseShapeError):
        asyncio.run(generator.generate("x"))


def test_non_json_body_raises_shape_error() -> None:
    """Non-JSON bodies are rejected."""
    generator = _make_generator(lambda _r: httpx.Response(200, text="<html>"))

    with pytest.raises(GenerationResponseShapeError, match="failed to parse"):
        asyncio.run(generator.generate("x"))


def test_blank_content_raises_empty_generation() -> None:
    """Whitespace-only answers count as failures."""
    generator = _make_generator(lambda _r: httpx.Response(200, json=_completion(" \n")))

    with pytest.raises(EmptyGenerationError):
        asyncio.run(generator.generate("x"))


def test_blank_api_key_is_rejected() -> None:
    """The generator refuses to start without a key."""
    with pytest.raises(GenerationConfigError):
        ChatCompletionTextGenerator(ChatCompletionConfig(api_key="  "))


class TestChatCompletionConfigFromEnv:
    """Tests for ChatCompletionConfig.from_env."""

    def test_missing_key_disables_structuring(self) -> None:
        """No key means no configuration."""
        assert ChatCompletionConfig.from_env() is None

    def test_reads_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Endpoint, model and max tokens can be overridden."""
        monkeypatch.setenv("HUDDLE_OPENROUTER_API_KEY", "sk-or")
        monkeypatch.setenv("HUDDLE_STRUCTURING_MODEL", "other/model")
        monkeypatch.setenv("HUDDLE_STRUCTURING_ENDPOINT", _ENDPOINT)
        monkeypatch.setenv("HUDDLE_STRUCTURING_MAX_TOKENS", "900")

        config = ChatCompletionConfig.from_env()

        assert config == ChatCompletionConfig(
            api_key="sk-or", endpoint=_ENDPOINT, model="other/model", max_tokens=900
        )

    @pytest.mark.parametrize("raw", ["zero", "0", "-3"])
    def test_invalid_max_tokens(
        self, monkeypatch: pytest.MonkeyPatch, raw: str
    ) -> None:
        """Non-positive or non-numeric budgets are configuration errors."""
        monkeypatch.setenv("HUDDLE_OPENROUTER_API_KEY", "sk-or")
        monkeypatch.setenv("HUDDLE_STRUCTURING_MAX_TOKENS", raw)

        with pytest.raises(GenerationConfigError, match="max_tokens"):
            ChatCompletionConfig.from_env()

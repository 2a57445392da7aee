"""OpenAI-compatible chat-completions implementation of TextGenerator."""

from __future__ import annotations

import json
import time
import typing as typ

import httpx

from .errors import (
    EmptyGenerationError,
    GenerationAPIError,
    GenerationConfigError,
    GenerationResponseShapeError,
    GenerationTimeoutError,
)
from .metrics import GenerationMetrics

if typ.TYPE_CHECKING:
    from .config import ChatCompletionConfig

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_RATE_LIMITED = 429


def _to_int_or_none(value: object) -> int | None:
    """Return ``int`` for integer values, else ``None``."""
    if isinstance(value, int):
        return value
    return None


def _get_retry_after(response: httpx.Response) -> int | None:
    """Extract the Retry-After header value if present and numeric."""
    retry_after = response.headers.get("Retry-After")
    if retry_after and retry_after.isdigit():
        return int(retry_after)
    return None


class ChatCompletionTextGenerator:
    """Send the prompt as one user message to a chat-completions endpoint.

    Used for the structuring stage, typically against OpenRouter. Any
    transport failure, error status, malformed body or blank answer raises
    a :class:`~huddle.generation.errors.GenerationError`.

    Parameters
    ----------
    config
        Endpoint, model and credential settings.
    http_client
        Optional client for testing. When omitted the generator creates
        and owns one.

    """

    def __init__(
        self,
        config: ChatCompletionConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with configuration."""
        if not config.api_key.strip():
            raise GenerationConfigError.empty_api_key()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
        )
        self._last_invocation_metrics: GenerationMetrics | None = None

    @property
    def config(self) -> ChatCompletionConfig:
        """Return the configuration used by this generator."""
        return self._config

    @property
    def label(self) -> str:
        """Return the model identifier for log messages."""
        return self._config.model

    @property
    def last_invocation_metrics(self) -> GenerationMetrics | None:
        """Return metrics captured from the most recent successful call."""
        return self._last_invocation_metrics

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        """Return the assistant message content for ``prompt``.

        Raises
        ------
        GenerationTimeoutError
            If the request times out.
        GenerationAPIError
            If the request fails or returns an error status.
        GenerationResponseShapeError
            If the body is not JSON or lacks ``choices[0].message.content``.
        EmptyGenerationError
            If the content is blank.

        """
        started = time.perf_counter()
        response = await self._send_request(self._build_payload(prompt))
        self._check_response_errors(response)
        data = self._parse_json_response(response)
        content = self._extract_content(data).strip()
        if not content:
            raise EmptyGenerationError.from_backend(self.label)
        self._last_invocation_metrics = self._extract_usage_metrics(
            data, latency_ms=(time.perf_counter() - started) * 1000
        )
        return content

    def _build_payload(self, prompt: str) -> dict[str, object]:
        return {
            "model": self._config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._config.max_tokens,
        }

    async def _send_request(self, payload: dict[str, object]) -> httpx.Response:
        try:
            return await self._client.post(self._config.endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise GenerationTimeoutError.after(
                self.label, self._config.timeout_s
            ) from exc
        except httpx.RequestError as exc:
            raise GenerationAPIError.network_error(str(exc)) from exc

    def _check_response_errors(self, response: httpx.Response) -> None:
        if response.status_code == _HTTP_RATE_LIMITED:
            raise GenerationAPIError.rate_limited(_get_retry_after(response))

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GenerationAPIError.http_error(response.status_code, response.text)

    def _parse_json_response(self, response: httpx.Response) -> dict[str, object]:
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise GenerationResponseShapeError.invalid_json(response.text) from exc
        if not isinstance(data, dict):
            raise GenerationResponseShapeError.missing("choices")
        return typ.cast("dict[str, object]", data)

    def _extract_usage_metrics(
        self, data: dict[str, object], *, latency_ms: float
    ) -> GenerationMetrics:
        usage = data.get("usage")
        if not isinstance(usage, dict):
            return GenerationMetrics(latency_ms=latency_ms)

        usage_dict = typ.cast("dict[str, object]", usage)
        return GenerationMetrics(
            prompt_tokens=_to_int_or_none(usage_dict.get("prompt_tokens")),
            completion_tokens=_to_int_or_none(usage_dict.get("completion_tokens")),
            total_tokens=_to_int_or_none(usage_dict.get("total_tokens")),
            latency_ms=latency_ms,
        )

    def _extract_content(self, data: dict[str, object]) -> str:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise GenerationResponseShapeError.missing("choices")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise GenerationResponseShapeError.missing("choices[0]")

        message = typ.cast("dict[str, object]", first_choice).get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise GenerationResponseShapeError.missing("choices[0].message.content")

        return content


__all__ = ["ChatCompletionTextGenerator"]

"""Configuration for the OpenAI-compatible structuring backend."""

from __future__ import annotations

import dataclasses
import os

from .errors import GenerationConfigError

_DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
_DEFAULT_MODEL = "google/gemini-2.5-flash"
_DEFAULT_TIMEOUT_S = 120.0
DEFAULT_STRUCTURING_MAX_TOKENS = 2500


@dataclasses.dataclass(frozen=True, slots=True)
class ChatCompletionConfig:
    """Settings for :class:`~huddle.generation.chat.ChatCompletionTextGenerator`.

    Attributes
    ----------
    api_key
        Bearer token for the endpoint (an OpenRouter key by default).
    endpoint
        Chat completions URL.
    model
        Model identifier sent with each request.
    timeout_s
        HTTP timeout in seconds.
    max_tokens
        Maximum completion length.

    """

    api_key: str
    endpoint: str = _DEFAULT_ENDPOINT
    model: str = _DEFAULT_MODEL
    timeout_s: float = _DEFAULT_TIMEOUT_S
    max_tokens: int = DEFAULT_STRUCTURING_MAX_TOKENS

    @staticmethod
    def _parse_max_tokens_from_env(default: int) -> int:
        raw_max_tokens = os.environ.get("HUDDLE_STRUCTURING_MAX_TOKENS")
        if raw_max_tokens is None:
            return default

        try:
            max_tokens = int(raw_max_tokens)
        except ValueError as exc:
            raise GenerationConfigError.invalid_max_tokens(raw_max_tokens) from exc

        if max_tokens <= 0:
            raise GenerationConfigError.invalid_max_tokens(raw_max_tokens)

        return max_tokens

    @classmethod
    def from_env(
        cls,
        *,
        api_key: str | None = None,
        default_max_tokens: int = DEFAULT_STRUCTURING_MAX_TOKENS,
    ) -> ChatCompletionConfig | None:
        """Build configuration from environment variables.

        Reads the following environment variables:

        - ``HUDDLE_OPENROUTER_API_KEY``: API key, used when ``api_key`` is
          not given; structuring is disabled when the key is blank
        - ``HUDDLE_STRUCTURING_ENDPOINT``: Optional endpoint override
        - ``HUDDLE_STRUCTURING_MODEL``: Optional model override
        - ``HUDDLE_STRUCTURING_MAX_TOKENS``: Optional positive integer; takes
          precedence over ``default_max_tokens``

        Parameters
        ----------
        api_key
            Key already read by the caller, typically from
            :class:`~huddle.config.Credentials`.
        default_max_tokens
            Completion budget used when the environment sets none.

        Returns
        -------
        ChatCompletionConfig | None
            Configuration, or ``None`` when no API key is configured.

        Raises
        ------
        GenerationConfigError
            If ``HUDDLE_STRUCTURING_MAX_TOKENS`` is invalid.

        """
        if api_key is None:
            api_key = os.environ.get("HUDDLE_OPENROUTER_API_KEY", "")
        api_key = api_key.strip()
        if not api_key:
            return None

        return cls(
            api_key=api_key,
            endpoint=os.environ.get("HUDDLE_STRUCTURING_ENDPOINT", _DEFAULT_ENDPOINT),
            model=os.environ.get("HUDDLE_STRUCTURING_MODEL", _DEFAULT_MODEL),
            max_tokens=cls._parse_max_tokens_from_env(default_max_tokens),
        )


__all__ = ["DEFAULT_STRUCTURING_MAX_TOKENS", "ChatCompletionConfig"]

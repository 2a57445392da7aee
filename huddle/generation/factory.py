"""Build the formatter and structurer generators from configuration."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from .chat import ChatCompletionTextGenerator
from .command import DEFAULT_COMMAND, DEFAULT_TIMEOUT_S, CommandTextGenerator
from .config import DEFAULT_STRUCTURING_MAX_TOKENS, ChatCompletionConfig

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def create_formatter(
    command: str | cabc.Sequence[str] = DEFAULT_COMMAND,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> CommandTextGenerator:
    """Return the command-backed generator used for the formatting stage."""
    return CommandTextGenerator(command, timeout_s=timeout_s)


def create_structurer(
    *,
    api_key: str | None = None,
    default_max_tokens: int | None = None,
    max_tokens: int | None = None,
    config: ChatCompletionConfig | None = None,
) -> ChatCompletionTextGenerator | None:
    """Return the structuring generator, or ``None`` when it is not configured.

    Parameters
    ----------
    api_key
        Structuring API key. When omitted it is read from the environment.
    default_max_tokens
        Completion budget used unless ``HUDDLE_STRUCTURING_MAX_TOKENS`` is
        set. The ticket digest uses a smaller default than the activity
        digest.
    max_tokens
        Fixed completion budget that ignores the environment, for callers
        such as page summaries that need a short answer.
    config
        Explicit configuration. When omitted it is read with
        :meth:`ChatCompletionConfig.from_env`.

    Returns
    -------
    ChatCompletionTextGenerator | None
        ``None`` means the pipeline runs the formatting stage on raw data.

    Raises
    ------
    GenerationConfigError
        If the environment holds an invalid token budget.

    Examples
    --------
    >>> import os
    >>> os.environ.pop("HUDDLE_OPENROUTER_API_KEY", None)
    >>> create_structurer() is None
    True

    """
    resolved = config
    if resolved is None:
        resolved = ChatCompletionConfig.from_env(
            api_key=api_key,
            default_max_tokens=default_max_tokens or DEFAULT_STRUCTURING_MAX_TOKENS,
        )
    if resolved is None:
        return None
    if max_tokens is not None:
        resolved = dc.replace(resolved, max_tokens=max_tokens)
    return ChatCompletionTextGenerator(resolved)


__all__ = ["create_formatter", "create_structurer"]

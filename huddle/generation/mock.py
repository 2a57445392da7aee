"""Deterministic text generator for tests and local dry runs."""

from __future__ import annotations

import asyncio
import collections.abc as cabc

from .errors import EmptyGenerationError, GenerationError

type Responder = cabc.Callable[[str], str]


class StaticTextGenerator:
    """Return a fixed or computed response and record every prompt.

    Parameters
    ----------
    response
        Text to return, or a callable computing it from the prompt.
    error
        Exception raised instead of answering, to simulate a failing backend.
    delay_s
        Seconds to sleep before answering, to exercise timeouts.

    Examples
    --------
    >>> generator = StaticTextGenerator("*Daily Dev Summary*")
    >>> asyncio.run(generator.generate("anything"))
    '*Daily Dev Summary*'
    >>> generator.prompts
    ['anything']

    """

    def __init__(
        self,
        response: str | Responder = "",
        *,
        error: GenerationError | None = None,
        delay_s: float = 0.0,
        label: str = "static",
    ) -> None:
        """Store the canned behaviour."""
        self._response = response
        self._error = error
        self._delay_s = delay_s
        self._label = label
        self.prompts: list[str] = []

    @property
    def label(self) -> str:
        """Return the label used in log messages."""
        return self._label

    @property
    def calls(self) -> int:
        """Return how many times :meth:`generate` was invoked."""
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        """Record ``prompt`` and return the configured response."""
        self.prompts.append(prompt)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._error is not None:
            raise self._error
        text = self._response(prompt) if callable(self._response) else self._response
        if not text.strip():
            raise EmptyGenerationError.from_backend(self._label)
        return text


__all__ = ["StaticTextGenerator"]

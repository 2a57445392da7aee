"""TextGenerator protocol shared by both pipeline stages."""

from __future__ import annotations

import typing as typ


@typ.runtime_checkable
class TextGenerator(typ.Protocol):
    """Turn a prompt into complete text, or fail.

    Implementations wrap one backend each (an external command, an
    OpenAI-compatible HTTP endpoint, a deterministic stub). They must raise
    :class:`~huddle.generation.errors.GenerationError` on any failure,
    including empty output, and never return partial text.

    Examples
    --------
    >>> from huddle.generation import StaticTextGenerator, TextGenerator
    >>> generator: TextGenerator = StaticTextGenerator("hello")
    >>> isinstance(generator, TextGenerator)
    True

    """

    @property
    def label(self) -> str:
        """Short human-readable backend description used in logs."""
        ...

    async def generate(self, prompt: str) -> str:
        """Return the generated text for ``prompt``.

        Raises
        ------
        GenerationError
            On backend failure, timeout or empty output.

        """
        ...


__all__ = ["TextGenerator"]

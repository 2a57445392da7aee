"""Two-stage summarisation pipeline.

Stage one (structuring) is optional and best effort: when no structurer is
configured it is skipped, and when it fails, times out or returns nothing the
rendered text is used unchanged. Stage two (formatting) is mandatory and its
failure ends the run in :attr:`PipelineState.FAILED`. Stage two never starts
before stage one has resolved.

Usage
-----
>>> from huddle.generation import StaticTextGenerator
>>> from huddle.summary import ACTIVITY_PROMPTS, PromptContext, SummaryPipeline
>>> pipeline = SummaryPipeline(StaticTextGenerator("*Daily Dev Summary*"))
>>> result = await pipeline.run(
...     rendered, prompts=ACTIVITY_PROMPTS, context=PromptContext(today=today)
... )
>>> result.state
<PipelineState.RAW_AND_FORMATTED: 'raw_and_formatted'>

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import enum
import typing as typ

from huddle.generation.errors import (
    EmptyGenerationError,
    GenerationError,
    GenerationTimeoutError,
)
from huddle.logging import get_logger, log_debug, log_error, log_info, log_warning

from .prompts import question_prompt

if typ.TYPE_CHECKING:
    from huddle.generation.protocol import TextGenerator

    from .prompts import PromptContext, PromptSet

logger = get_logger(__name__)

DEFAULT_STAGE_TIMEOUT_S = 120.0


class PipelineState(enum.StrEnum):
    """End state reached by one pipeline invocation."""

    STRUCTURED_AND_FORMATTED = "structured_and_formatted"
    RAW_AND_FORMATTED = "raw_and_formatted"
    FAILED = "failed"


@dc.dataclass(frozen=True, slots=True)
class PipelineResult:
    """Outcome of a pipeline invocation.

    Attributes
    ----------
    state
        End state reached.
    text
        Final formatted text, or ``None`` when the formatting stage failed.
    stage_input
        Text handed to the formatting stage (structured or rendered).
    structured_text
        Structuring-stage output, when that stage succeeded.
    error
        Formatting-stage failure, when :attr:`state` is ``FAILED``.
    structuring_error
        Structuring-stage failure that caused a fallback to raw text.

    """

    state: PipelineState
    text: str | None
    stage_input: str
    structured_text: str | None = None
    error: GenerationError | None = None
    structuring_error: GenerationError | None = None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when formatted text is available."""
        return self.state is not PipelineState.FAILED


class CachedActivity(typ.Protocol):
    """Cached material an interactive question is answered from."""

    @property
    def rendered(self) -> str:
        """Rendered text of the cached snapshot."""
        ...

    @property
    def report(self) -> str | None:
        """Most recent scheduled report, if any."""
        ...


class SummaryPipeline:
    """Run the structuring and formatting stages with fallback.

    Parameters
    ----------
    formatter
        Mandatory generator for the final text.
    structurer
        Optional generator that reorganises rendered text first. ``None``
        selects the raw path as a normal mode of operation.
    timeout_s
        Upper bound for each generator call; exceeding it counts as that
        stage failing.

    """

    def __init__(
        self,
        formatter: TextGenerator,
        structurer: TextGenerator | None = None,
        *,
        timeout_s: float = DEFAULT_STAGE_TIMEOUT_S,
    ) -> None:
        """Store the generators and the per-call time budget."""
        self._formatter = formatter
        self._structurer = structurer
        self._timeout_s = timeout_s

    @property
    def has_structurer(self) -> bool:
        """Return ``True`` when a structuring stage is configured."""
        return self._structurer is not None

    async def run(
        self, rendered: str, *, prompts: PromptSet, context: PromptContext
    ) -> PipelineResult:
        """Summarise ``rendered`` activity into the final report text.

        Parameters
        ----------
        rendered
            Output of :func:`huddle.activity.render.render`.
        prompts
            Prompt builders of the run profile.
        context
            Static prompt context.

        Returns
        -------
        PipelineResult
            ``STRUCTURED_AND_FORMATTED`` or ``RAW_AND_FORMATTED`` on success,
            ``FAILED`` when formatting failed.

        """
        structured_text, structuring_error = await self._structure(
            rendered, prompts=prompts, context=context
        )
        structured = structured_text is not None
        stage_input = structured_text if structured_text is not None else rendered

        try:
            text = await self._invoke(
                self._formatter,
                prompts.formatting(stage_input, context, structured=structured),
            )
        except GenerationError as exc:
            log_error(
                logger,
                "Formatting with %s failed: %s",
                self._formatter.label,
                exc,
            )
            return PipelineResult(
                state=PipelineState.FAILED,
                text=None,
                stage_input=stage_input,
                structured_text=structured_text,
                error=exc,
                structuring_error=structuring_error,
            )

        return PipelineResult(
            state=(
                PipelineState.STRUCTURED_AND_FORMATTED
                if structured
                else PipelineState.RAW_AND_FORMATTED
            ),
            text=text,
            stage_input=stage_input,
            structured_text=structured_text,
            structuring_error=structuring_error,
        )

    async def answer(
        self,
        question: str,
        *,
        cached: CachedActivity | None,
        context: PromptContext,
    ) -> PipelineResult:
        """Answer ``question`` from cached activity without structuring.

        The prompt carries the cached rendered text and last report, and
        tells the model to say so when that data cannot answer the question.
        """
        rendered = cached.rendered if cached is not None else ""
        report = cached.report if cached is not None else None
        prompt = question_prompt(
            question, rendered=rendered, last_report=report, context=context
        )

        try:
            text = await self._invoke(self._formatter, prompt)
        except GenerationError as exc:
            log_error(logger, "Answering question failed: %s", exc)
            return PipelineResult(
                state=PipelineState.FAILED, text=None, stage_input=rendered, error=exc
            )

        return PipelineResult(
            state=PipelineState.RAW_AND_FORMATTED, text=text, stage_input=rendered
        )

    async def _structure(
        self, rendered: str, *, prompts: PromptSet, context: PromptContext
    ) -> tuple[str | None, GenerationError | None]:
        if self._structurer is None:
            log_info(logger, "No structuring backend configured; using raw data")
            return (None, None)

        try:
            structured = await self._invoke(
                self._structurer, prompts.structuring(rendered, context)
            )
        except GenerationError as exc:
            log_warning(
                logger,
                "Structuring with %s failed, falling back to raw data: %s",
                self._structurer.label,
                exc,
            )
            return (None, exc)

        log_debug(logger, "Structuring produced %d characters", len(structured))
        return (structured, None)

    async def _invoke(self, generator: TextGenerator, prompt: str) -> str:
        try:
            async with asyncio.timeout(self._timeout_s):
                text = await generator.generate(prompt)
        except TimeoutError as exc:
            raise GenerationTimeoutError.after(
                generator.label, self._timeout_s
            ) from exc

        if not text.strip():
            raise EmptyGenerationError.from_backend(generator.label)
        return text.strip()


__all__ = [
    "DEFAULT_STAGE_TIMEOUT_S",
    "CachedActivity",
    "PipelineResult",
    "PipelineState",
    "SummaryPipeline",
]

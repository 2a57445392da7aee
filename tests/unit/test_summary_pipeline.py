"""Unit tests for the two-stage summarisation pipeline."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt

from huddle.generation import (
    EmptyGenerationError,
    GenerationAPIError,
    GenerationCommandError,
    GenerationTimeoutError,
    StaticTextGenerator,
)
from huddle.summary import (
    ACTIVITY_PROMPTS,
    PipelineState,
    PromptContext,
    SummaryPipeline,
)

_CONTEXT = PromptContext(today=dt.date(2025, 3, 14))
_RENDERED = "COMMITS:\n[reef] octocat (main): Fix flaky test | url"


@dc.dataclass(frozen=True, slots=True)
class _Cached:
    rendered: str
    report: str | None


def _run(pipeline: SummaryPipeline, rendered: str = _RENDERED):  # noqa: ANN202
    return asyncio.run(
        pipeline.run(rendered, prompts=ACTIVITY_PROMPTS, context=_CONTEXT)
    )


def test_structured_path_feeds_structured_text_to_formatter() -> None:
    """A successful structurer output becomes the formatter input."""
    structurer = StaticTextGenerator("Mona: 1 commit in reef")
    formatter = StaticTextGenerator("*Daily Dev Summary*")
    pipeline = SummaryPipeline(formatter, structurer)

    result = _run(pipeline)

    assert result.state is PipelineState.STRUCTURED_AND_FORMATTED
    assert result.text == "*Daily Dev Summary*"
    assert result.structured_text == "Mona: 1 commit in reef"
    assert result.stage_input == "Mona: 1 commit in reef"
    assert _RENDERED in structurer.prompts[0]
    assert "ORGANIZED ACTIVITY DATA:\nMona: 1 commit in reef" in formatter.prompts[0]


def test_missing_structurer_selects_raw_path() -> None:
    """Without a structurer the rendered text is formatted directly."""
    formatter = StaticTextGenerator("report")

    result = _run(SummaryPipeline(formatter))

    assert result.state is PipelineState.RAW_AND_FORMATTED
    assert result.structuring_error is None
    assert result.stage_input == _RENDERED
    assert f"RAW ACTIVITY DATA:\n{_RENDERED}" in formatter.prompts[0]


def test_structuring_failure_falls_back_to_raw_text() -> None:
    """A failing structurer is recorded and the raw text is formatted."""
    error = GenerationAPIError.http_error(500)
    pipeline = SummaryPipeline(
        StaticTextGenerator("report"), StaticTextGenerator(error=error)
    )

    result = _run(pipeline)

    assert result.state is PipelineState.RAW_AND_FORMATTED
    assert result.structuring_error is error
    assert result.structured_text is None
    assert result.text == "report"


def test_blank_structuring_output_counts_as_failure() -> None:
    """Whitespace from the structurer falls back like any other failure."""
    pipeline = SummaryPipeline(
        StaticTextGenerator("report"), StaticTextGenerator(lambda _p: "   ")
    )

    result = _run(pipeline)

    assert result.state is PipelineState.RAW_AND_FORMATTED
    assert isinstance(result.structuring_error, EmptyGenerationError)


def test_slow_structurer_times_out_and_falls_back() -> None:
    """Each call is bounded by the stage timeout."""
    pipeline = SummaryPipeline(
        StaticTextGenerator("report"),
        StaticTextGenerator("late", delay_s=1.0),
        timeout_s=0.05,
    )

    result = _run(pipeline)

    assert result.state is PipelineState.RAW_AND_FORMATTED
    assert isinstance(result.structuring_error, GenerationTimeoutError)


def test_formatting_failure_fails_the_run() -> None:
    """The formatting stage is mandatory."""
    error = GenerationCommandError("command 'claude' exited with status 1")
    pipeline = SummaryPipeline(
        StaticTextGenerator(error=error), StaticTextGenerator("organised")
    )

    result = _run(pipeline)

    assert result.state is PipelineState.FAILED
    assert not result.succeeded
    assert result.text is None
    assert result.error is error
    assert result.structured_text == "organised"


def test_formatter_output_is_trimmed() -> None:
    """Leading and trailing whitespace is removed from the final text."""
    result = _run(SummaryPipeline(StaticTextGenerator("\n report \n")))

    assert result.text == "report"


def test_stage_two_starts_after_stage_one() -> None:
    """The formatter only sees the prompt once the structurer finished."""
    order: list[str] = []

    def _structure(_prompt: str) -> str:
        order.append("structure")
        return "organised"

    def _format(_prompt: str) -> str:
        order.append("format")
        return "report"

    _run(
        SummaryPipeline(
            StaticTextGenerator(_format), StaticTextGenerator(_structure)
        )
    )

    assert order == ["structure", "format"]


class TestAnswer:
    """Tests for SummaryPipeline.answer."""

    def test_answer_uses_formatter_only(self) -> None:
        """Questions skip the structuring stage."""
        structurer = StaticTextGenerator("unused")
        formatter = StaticTextGenerator("Mona fixed the flaky test.")
        pipeline = SummaryPipeline(formatter, structurer)

        result = asyncio.run(
            pipeline.answer(
                "what did Mona do?",
                cached=_Cached(rendered=_RENDERED, report="*Daily*"),
                context=_CONTEXT,
            )
        )

        assert result.text == "Mona fixed the flaky test."
        assert structurer.calls == 0
        assert "USER QUESTION: what did Mona do?" in formatter.prompts[0]
        assert "LAST DAILY SUMMARY:\n*Daily*" in formatter.prompts[0]

    def test_answer_without_cache(self) -> None:
        """An empty cache still produces a prompt."""
        formatter = StaticTextGenerator("No data yet.")

        result = asyncio.run(
            SummaryPipeline(formatter).answer("hi", cached=None, context=_CONTEXT)
        )

        assert result.succeeded
        assert "(no data available yet)" in formatter.prompts[0]

    def test_answer_failure(self) -> None:
        """Formatter failure yields a FAILED result, not an exception."""
        pipeline = SummaryPipeline(
            StaticTextGenerator(error=GenerationAPIError.network_error("down"))
        )

        result = asyncio.run(pipeline.answer("hi", cached=None, context=_CONTEXT))

        assert result.state is PipelineState.FAILED
        assert result.text is None

"""Unit tests for the mention-answering assistant."""

from __future__ import annotations

import asyncio

import pytest

from huddle.activity.aggregator import aggregate
from huddle.assistant import (
    EMPTY_QUESTION_REPLY,
    FAILURE_REPLY,
    ActivityCache,
    AssistantService,
    CacheEntry,
    Mention,
    extract_question,
)
from huddle.connectors import SourceConfigError
from huddle.generation import GenerationAPIError, StaticTextGenerator
from huddle.summary import PromptContext, SummaryPipeline
from huddle.summary.prompts import NO_DATA_PLACEHOLDER
from tests.helpers.event_builders import NOW, commit, window
from tests.helpers.fakes import FakeReplier

_MENTION = Mention(
    channel="C1", ts="1700000000.000100", text="<@U0BOT> what did Mona ship?"
)


def _cached_entry() -> CacheEntry:
    return CacheEntry(
        snapshot=aggregate([[commit()]], window()),
        rendered="COMMITS:\n[reef] Mona (main): Fix flaky test",
        report="*Daily Dev Summary*",
        populated_at=NOW,
    )


def _service(
    formatter: StaticTextGenerator, replier: FakeReplier
) -> tuple[AssistantService, list[int]]:
    populations: list[int] = []

    async def _populate() -> CacheEntry | None:
        populations.append(1)
        return _cached_entry()

    service = AssistantService(
        cache=ActivityCache(_populate),
        pipeline=SummaryPipeline(formatter),
        replier=replier,
        prompt_context=PromptContext(today=NOW.date()),
    )
    return service, populations


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("<@U012AB3CD> what shipped today?", "what shipped today?"),
        ("hey <@U1> and <@U2>  ", "hey  and"),
        ("<@U0BOT>", ""),
        ("no mention", "no mention"),
    ],
)
def test_extract_question(text: str, expected: str) -> None:
    """Mention tokens are removed and whitespace trimmed."""
    assert extract_question(text) == expected


def test_empty_question_gets_canned_reply() -> None:
    """A bare mention is answered without touching the cache or generator."""
    formatter = StaticTextGenerator("unused")
    replier = FakeReplier()
    service, populations = _service(formatter, replier)

    text = asyncio.run(
        service.handle_mention(Mention(channel="C1", ts="1.0", text="<@U0BOT>  "))
    )

    assert text == EMPTY_QUESTION_REPLY
    assert replier.actions == ["reply"]
    assert formatter.calls == 0
    assert populations == []


def test_question_is_answered_in_thread() -> None:
    """The working reaction brackets generation and the answer is threaded."""
    formatter = StaticTextGenerator("Mona fixed the flaky test.")
    replier = FakeReplier()
    service, populations = _service(formatter, replier)

    text = asyncio.run(service.handle_mention(_MENTION))

    assert text == "Mona fixed the flaky test."
    assert replier.actions == ["add_reaction", "remove_reaction", "reply"]
    assert replier.calls[-1] == ("reply", "C1", _MENTION.ts, text)
    assert populations == [1]
    assert "USER QUESTION: what did Mona ship?" in formatter.prompts[0]
    assert "*Daily Dev Summary*" in formatter.prompts[0]


def test_generation_failure_posts_apology() -> None:
    """A failed answer still removes the reaction and replies."""
    formatter = StaticTextGenerator(error=GenerationAPIError.rate_limited(30))
    replier = FakeReplier()
    service, _ = _service(formatter, replier)

    text = asyncio.run(service.handle_mention(_MENTION))

    assert text == FAILURE_REPLY
    assert replier.actions == ["add_reaction", "remove_reaction", "reply"]
    assert replier.replies == [FAILURE_REPLY]


def test_cache_is_reused_across_questions() -> None:
    """Only the first question triggers collection."""
    replier = FakeReplier()
    service, populations = _service(StaticTextGenerator("answer"), replier)

    async def _run() -> None:
        await service.handle_mention(_MENTION)
        await service.handle_mention(_MENTION)

    asyncio.run(_run())

    assert populations == [1]
    assert replier.replies == ["answer", "answer"]


def test_dispatch_runs_in_background_and_drains() -> None:
    """Dispatched mentions are tracked until they finish."""
    replier = FakeReplier()
    service, _ = _service(StaticTextGenerator("answer"), replier)

    async def _run() -> tuple[int, int]:
        service.dispatch(_MENTION)
        service.dispatch(_MENTION)
        pending = service.pending
        await service.drain()
        return pending, service.pending

    pending_before, pending_after = asyncio.run(_run())

    assert pending_before == 2
    assert pending_after == 0
    assert replier.replies == ["answer", "answer"]


def test_warm_up_populates_cache() -> None:
    """Warm-up fills the cache without a question."""
    service, populations = _service(StaticTextGenerator("answer"), FakeReplier())

    async def _run() -> None:
        service.warm_up()
        await service.drain()

    asyncio.run(_run())

    assert populations == [1]
    assert service.cache.entry is not None


def test_collection_failure_still_answers() -> None:
    """A failed collection leaves the question answered from no data."""
    formatter = StaticTextGenerator("Nothing collected yet.")
    replier = FakeReplier()

    async def _populate() -> CacheEntry | None:
        raise SourceConfigError.missing_credential("github", "HUDDLE_GITHUB_TOKEN")

    service = AssistantService(
        cache=ActivityCache(_populate),
        pipeline=SummaryPipeline(formatter),
        replier=replier,
        prompt_context=PromptContext(today=NOW.date()),
    )

    text = asyncio.run(service.handle_mention(_MENTION))

    assert text == "Nothing collected yet."
    assert replier.actions == ["add_reaction", "remove_reaction", "reply"]
    assert NO_DATA_PLACEHOLDER in formatter.prompts[0]
    assert service.cache.entry is None

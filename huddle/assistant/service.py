"""Answer questions addressed to the bot from cached activity."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import re
import typing as typ

from huddle.common.time import utcnow
from huddle.delivery.slack import WORKING_REACTION
from huddle.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from huddle.summary.pipeline import SummaryPipeline
    from huddle.summary.prompts import PromptContext

    from .cache import ActivityCache, CacheEntry

logger = get_logger(__name__)

EMPTY_QUESTION_REPLY = "What would you like to know about the team's dev activity?"
FAILURE_REPLY = "Sorry, I couldn't generate a response. Try again in a moment."

_MENTION_TOKEN = re.compile(r"<@[A-Z0-9]+>")


def extract_question(text: str) -> str:
    """Return ``text`` with user mention tokens removed and trimmed.

    Examples
    --------
    >>> extract_question("<@U012AB3CD> what shipped today?")
    'what shipped today?'

    """
    return _MENTION_TOKEN.sub("", text).strip()


@dc.dataclass(frozen=True, slots=True)
class Mention:
    """A message that mentioned the bot.

    Attributes
    ----------
    channel
        Channel the message was posted in.
    ts
        Message timestamp; replies are threaded under it.
    text
        Raw message text including mention tokens.
    user
        Author of the message.

    """

    channel: str
    ts: str
    text: str
    user: str = ""


class ThreadReplier(typ.Protocol):
    """Chat operations the assistant needs."""

    async def reply(self, channel: str, thread_ts: str, text: str) -> None:
        """Post ``text`` in the thread rooted at ``thread_ts``."""
        ...

    async def add_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        """Add a reaction; must not raise for reaction failures."""
        ...

    async def remove_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        """Remove a reaction; must not raise for reaction failures."""
        ...


class AssistantService:
    """Handle bot mentions, each in its own task.

    Parameters
    ----------
    cache
        Shared activity cache.
    pipeline
        Pipeline whose :meth:`~huddle.summary.pipeline.SummaryPipeline.answer`
        produces replies.
    replier
        Chat adapter used for reactions and replies.
    prompt_context
        Static prompt context; its date is refreshed for every question.

    """

    def __init__(
        self,
        *,
        cache: ActivityCache,
        pipeline: SummaryPipeline,
        replier: ThreadReplier,
        prompt_context: PromptContext,
    ) -> None:
        """Store collaborators."""
        self._cache = cache
        self._pipeline = pipeline
        self._replier = replier
        self._prompt_context = prompt_context
        self._tasks: set[asyncio.Task[object]] = set()

    @property
    def cache(self) -> ActivityCache:
        """Return the shared activity cache."""
        return self._cache

    @property
    def pending(self) -> int:
        """Return the number of background tasks still running."""
        return len(self._tasks)

    def dispatch(self, mention: Mention) -> asyncio.Task[object]:
        """Handle ``mention`` in a background task and return that task."""
        return self._spawn(self.handle_mention(mention), f"mention:{mention.ts}")

    def warm_up(self) -> asyncio.Task[object]:
        """Populate the cache in the background."""
        return self._spawn(self._cache.refresh(), "cache-warm-up")

    async def drain(self) -> None:
        """Wait for every background task to finish."""
        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def handle_mention(self, mention: Mention) -> str:
        """Answer ``mention`` in its thread and return the posted text."""
        question = extract_question(mention.text)
        if not question:
            await self._replier.reply(mention.channel, mention.ts, EMPTY_QUESTION_REPLY)
            return EMPTY_QUESTION_REPLY

        log_info(logger, "Question from %s: %s", mention.user or "unknown", question)
        await self._replier.add_reaction(mention.channel, mention.ts)
        try:
            cached = await self._cached_activity()
            result = await self._pipeline.answer(
                question,
                cached=cached,
                context=dc.replace(self._prompt_context, today=utcnow().date()),
            )
        finally:
            await self._replier.remove_reaction(mention.channel, mention.ts)

        text = result.text if result.succeeded and result.text else FAILURE_REPLY
        await self._replier.reply(mention.channel, mention.ts, text)
        return text

    async def _cached_activity(self) -> CacheEntry | None:
        try:
            return await self._cache.ensure()
        except Exception as exc:  # noqa: BLE001 - the question is still answered
            log_exception(
                logger, "Activity collection failed; answering without it", exc
            )
            return self._cache.entry

    def _spawn(
        self, coro: cabc.Coroutine[typ.Any, typ.Any, object], name: str
    ) -> asyncio.Task[object]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[object]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_exception(logger, f"Background task {task.get_name()} failed", exc)


__all__ = [
    "EMPTY_QUESTION_REPLY",
    "FAILURE_REPLY",
    "AssistantService",
    "Mention",
    "ThreadReplier",
    "extract_question",
]

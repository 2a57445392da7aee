"""Maintain the project context file used as static prompt context.

The file has a hand-written section followed by a marker line. Everything
below the marker is regenerated from the ticket tracker (active tickets)
and the document store (recently edited specs). A failing source is
reported inline and never prevents the rest of the file being written.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ
from pathlib import Path

from huddle.activity.authors import EMPTY_AUTHOR_MAP, AuthorMap
from huddle.activity.models import UNASSIGNED
from huddle.common.time import utcnow
from huddle.connectors.errors import SourceError
from huddle.generation.errors import GenerationError
from huddle.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    from huddle.connectors.documents import DocumentConnector, DocumentPage
    from huddle.connectors.tickets import ActiveTicket, TicketConnector
    from huddle.generation.protocol import TextGenerator

logger = get_logger(__name__)

MARKER = "<!-- AUTO-GENERATED BELOW — DO NOT EDIT MANUALLY -->"
SPEC_LOOKBACK_DAYS = 7
SPEC_CONTENT_LIMIT = 8000
SPEC_SUMMARY_MAX_TOKENS = 300

TICKETS_HEADING = "## Active Tickets (Linear)"
SPECS_HEADING = "## Recent Specs (Notion)"


def static_section(existing: str) -> str:
    """Return the hand-written part of a context file."""
    head, _, _ = existing.partition(MARKER)
    return head.rstrip()


def format_tickets(tickets: typ.Iterable[ActiveTicket], authors: AuthorMap) -> str:
    """Return one ``- ID: title — status — assignee`` line per ticket."""
    return "\n".join(
        f"- {ticket.identifier}: {ticket.title} — {ticket.status} — "
        f"{authors(ticket.assignee) if ticket.assignee else UNASSIGNED}"
        for ticket in tickets
    )


def spec_summary_prompt(title: str, content: str) -> str:
    """Return the prompt summarising one spec page."""
    return (
        "Summarize this product spec in 3-5 bullet points: what it does, "
        "current status, and key decisions made. Be concise.\n\n"
        f"Title: {title}\n\nContent:\n{content[:SPEC_CONTENT_LIMIT]}"
    )


def _failure_block(heading: str, error: BaseException) -> str:
    return f"{heading}\n\n_Failed to fetch: {error}_\n"


def read_context(path: Path | str) -> str:
    """Return the context file contents, or ``""`` when it does not exist."""
    path_obj = Path(path)
    if not path_obj.exists():
        return ""
    return path_obj.read_text(encoding="utf-8")


@dc.dataclass(frozen=True, slots=True)
class ContextSources:
    """Optional collaborators used to regenerate the context file.

    Attributes
    ----------
    tickets
        Ticket connector; ``None`` skips the active tickets section.
    documents
        Document connector; ``None`` skips the recent specs section.
    summarizer
        Generator summarising specs; ``None`` uses text excerpts.
    author_map
        Map applied to ticket assignees.

    """

    tickets: TicketConnector | None = None
    documents: DocumentConnector | None = None
    summarizer: TextGenerator | None = None
    author_map: AuthorMap = EMPTY_AUTHOR_MAP


class ContextBuilder:
    """Regenerate the auto-generated section of the context file."""

    def __init__(self, sources: ContextSources) -> None:
        """Store the configured sources."""
        self._sources = sources

    async def build(self, existing: str, *, now: dt.datetime | None = None) -> str:
        """Return the full context file for ``existing`` contents.

        Parameters
        ----------
        existing
            Current file contents; only the part above the marker is kept.
        now
            Generation time used for the timestamp and spec window.

        """
        moment = now or utcnow()
        parts = [f"_Last updated: {moment:%Y-%m-%d %H:%M} UTC_\n"]

        if self._sources.tickets is not None:
            parts.append(await self._tickets_block(self._sources.tickets))
        else:
            log_info(logger, "Skipping active tickets (ticket tracker not configured)")

        if self._sources.documents is not None:
            since = moment - dt.timedelta(days=SPEC_LOOKBACK_DAYS)
            block = await self._specs_block(self._sources.documents, since)
            if block:
                parts.append(block)
        else:
            log_info(logger, "Skipping recent specs (document store not configured)")

        generated = "\n".join(parts)
        return f"{static_section(existing)}\n\n{MARKER}\n\n{generated}"

    async def _tickets_block(self, connector: TicketConnector) -> str:
        try:
            tickets = await connector.fetch_active_tickets()
        except SourceError as exc:
            log_warning(logger, "Active ticket fetch failed (non-fatal): %s", exc)
            return _failure_block(TICKETS_HEADING, exc)

        log_info(logger, "Found %d active tickets", len(tickets))
        formatted = format_tickets(tickets, self._sources.author_map)
        return f"{TICKETS_HEADING}\n\n{formatted}\n"

    async def _specs_block(
        self, connector: DocumentConnector, since: dt.datetime
    ) -> str:
        try:
            pages = await connector.fetch_pages(since)
        except SourceError as exc:
            log_warning(logger, "Spec fetch failed (non-fatal): %s", exc)
            return _failure_block(SPECS_HEADING, exc)

        if not pages:
            return ""
        summaries = [await self._summarize(page) for page in pages]
        return f"{SPECS_HEADING}\n\n" + "\n\n".join(summaries) + "\n"

    async def _summarize(self, page: DocumentPage) -> str:
        heading = f"### {page.title}"
        if page.is_minimal:
            return f"{heading}\n\n_Page has minimal content._"

        summarizer = self._sources.summarizer
        if summarizer is None:
            return f"{heading}\n\n{page.excerpt()}"

        log_info(logger, "Summarizing spec: %s", page.title)
        try:
            prompt = spec_summary_prompt(page.title, page.text)
            summary = await summarizer.generate(prompt)
        except GenerationError as exc:
            log_warning(
                logger, "Spec summary failed for %r (non-fatal): %s", page.title, exc
            )
            return f"{heading}\n\n{page.excerpt()}"
        return f"{heading}\n\n{summary.strip()}"


__all__ = [
    "MARKER",
    "SPECS_HEADING",
    "SPEC_LOOKBACK_DAYS",
    "SPEC_SUMMARY_MAX_TOKENS",
    "TICKETS_HEADING",
    "ContextBuilder",
    "ContextSources",
    "format_tickets",
    "read_context",
    "spec_summary_prompt",
    "static_section",
]

"""Unit tests for the project context file builder."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

from huddle.activity.authors import AuthorMap
from huddle.connectors.documents import DocumentPage
from huddle.connectors.errors import SourceAPIError
from huddle.connectors.tickets import ActiveTicket
from huddle.context import (
    MARKER,
    ContextBuilder,
    ContextSources,
    format_tickets,
    read_context,
    spec_summary_prompt,
    static_section,
)
from huddle.generation import GenerationAPIError, StaticTextGenerator
from tests.helpers.event_builders import NOW

if typ.TYPE_CHECKING:
    from pathlib import Path

    from huddle.connectors.errors import SourceError

_LONG_TEXT = "Retry budget design. " * 30


class _FakeTickets:
    def __init__(
        self, tickets: list[ActiveTicket], error: SourceError | None = None
    ) -> None:
        self._tickets = tickets
        self._error = error

    async def fetch_active_tickets(self) -> list[ActiveTicket]:
        if self._error is not None:
            raise self._error
        return self._tickets


class _FakeDocuments:
    def __init__(
        self, pages: list[DocumentPage], error: SourceError | None = None
    ) -> None:
        self._pages = pages
        self._error = error
        self.since: list[dt.datetime] = []

    async def fetch_pages(self, since: dt.datetime) -> list[DocumentPage]:
        self.since.append(since)
        if self._error is not None:
            raise self._error
        return self._pages


def _page(title: str = "Retry budget", text: str = _LONG_TEXT) -> DocumentPage:
    return DocumentPage(
        page_id="p1",
        title=title,
        url="https://notion.test/p1",
        editor="Jane Doe",
        last_edited_at=NOW,
        text=text,
    )


def _build(sources: ContextSources, existing: str = "# Reef\n") -> str:
    return asyncio.run(ContextBuilder(sources).build(existing, now=NOW))


def test_static_section_keeps_text_above_marker() -> None:
    """Generated content below the marker is discarded."""
    existing = f"# Reef\n\nHand-written notes.\n\n{MARKER}\n\nold generated\n"

    assert static_section(existing) == "# Reef\n\nHand-written notes."
    assert static_section("# Reef\n\n") == "# Reef"


def test_format_tickets_maps_assignees() -> None:
    """Assignees are mapped and blank ones shown as Unassigned."""
    tickets = [
        ActiveTicket("ENG-1", "Retry budget", "In Progress", "Jane Doe"),
        ActiveTicket("ENG-2", "Flaky test", "Todo", ""),
    ]

    lines = format_tickets(tickets, AuthorMap({"Jane Doe": "Jane"})).splitlines()

    assert lines == [
        "- ENG-1: Retry budget — In Progress — Jane",
        "- ENG-2: Flaky test — Todo — Unassigned",
    ]


def test_spec_summary_prompt_truncates_content() -> None:
    """Very long pages are cut before being sent for summary."""
    prompt = spec_summary_prompt("Big", "x" * 20_000)

    assert "Title: Big" in prompt
    assert prompt.count("x") < 9000


def test_read_context_missing_file(tmp_path: Path) -> None:
    """A missing context file reads as empty."""
    assert read_context(tmp_path / "context.md") == ""


def test_build_with_all_sources() -> None:
    """Both generated sections follow the marker and timestamp."""
    summarizer = StaticTextGenerator("- Adds a retry budget\n")
    documents = _FakeDocuments([_page()])
    sources = ContextSources(
        tickets=typ.cast(
            "typ.Any",
            _FakeTickets([ActiveTicket("ENG-1", "Retry budget", "Todo", "Jane Doe")]),
        ),
        documents=typ.cast("typ.Any", documents),
        summarizer=summarizer,
        author_map=AuthorMap({"Jane Doe": "Jane"}),
    )

    content = _build(sources, existing=f"# Reef\n\n{MARKER}\n\nstale\n")

    static, generated = content.split(f"\n\n{MARKER}\n\n")
    assert static == "# Reef"
    assert "stale" not in generated
    assert generated.startswith("_Last updated: 2025-03-14 09:00 UTC_\n")
    assert "## Active Tickets (Linear)\n\n- ENG-1: Retry budget — Todo — Jane" in (
        generated
    )
    assert "## Recent Specs (Notion)\n\n### Retry budget\n\n- Adds a retry budget" in (
        generated
    )
    assert documents.since == [NOW - dt.timedelta(days=7)]
    assert "Title: Retry budget" in summarizer.prompts[0]


def test_unconfigured_sources_are_skipped() -> None:
    """Without sources only the timestamp is generated."""
    content = _build(ContextSources())

    assert content == f"# Reef\n\n{MARKER}\n\n_Last updated: 2025-03-14 09:00 UTC_\n"


def test_source_failures_are_reported_inline() -> None:
    """A failing source becomes a note and the other sections still render."""
    sources = ContextSources(
        tickets=typ.cast(
            "typ.Any", _FakeTickets([], SourceAPIError.timeout("tickets"))
        ),
        documents=typ.cast(
            "typ.Any",
            _FakeDocuments(
                [], SourceAPIError.http_error("documents", 500, "https://n")
            ),
        ),
    )

    content = _build(sources)

    assert "_Failed to fetch: tickets API request timed out_" in content
    assert "## Recent Specs (Notion)\n\n_Failed to fetch: documents API HTTP 500" in (
        content
    )


def test_no_recent_pages_omits_spec_section() -> None:
    """An empty result leaves out the specs heading entirely."""
    sources = ContextSources(documents=typ.cast("typ.Any", _FakeDocuments([])))

    assert "Recent Specs" not in _build(sources)


def test_minimal_pages_are_not_summarised() -> None:
    """Pages with little text get a placeholder instead of a summary."""
    summarizer = StaticTextGenerator("unused")
    sources = ContextSources(
        documents=typ.cast("typ.Any", _FakeDocuments([_page(text="stub")])),
        summarizer=summarizer,
    )

    content = _build(sources)

    assert "_Page has minimal content._" in content
    assert summarizer.calls == 0


def test_summary_failure_falls_back_to_excerpt() -> None:
    """Generation errors fall back to the page excerpt."""
    sources = ContextSources(
        documents=typ.cast("typ.Any", _FakeDocuments([_page()])),
        summarizer=StaticTextGenerator(error=GenerationAPIError.http_error(500)),
    )

    content = _build(sources)

    assert "### Retry budget\n\nRetry budget design. Retry budget" in content
    assert content.rstrip().endswith("...")


def test_no_summarizer_uses_excerpt() -> None:
    """Without a summarizer each page shows its excerpt."""
    sources = ContextSources(
        documents=typ.cast("typ.Any", _FakeDocuments([_page()]))
    )

    assert _page().excerpt() in _build(sources)

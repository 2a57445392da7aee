"""Unit tests for the document-store connector."""

from __future__ import annotations

import asyncio
import json
import typing as typ

import httpx
import pytest

from huddle.activity.models import DocumentSummary
from huddle.connectors.documents import (
    DocumentConnector,
    DocumentConnectorConfig,
    DocumentPage,
    block_text,
    page_title,
)
from tests.helpers.event_builders import NOW, window

_API = "https://notion.test/v1"
_LONG_TEXT = "Search v2 replaces the ranking pipeline with a learned model. " * 3


def _page(
    page_id: str, title: str, editor: dict[str, str] | None = None
) -> dict[str, typ.Any]:
    return {
        "id": page_id,
        "url": f"https://notion.so/{page_id}",
        "last_edited_time": "2025-03-14T07:30:00.000Z",
        "last_edited_by": editor if editor is not None else {"name": "Jane Doe"},
        "properties": {
            "Status": {"type": "select"},
            "Name": {"type": "title", "title": [{"plain_text": title}]},
        },
    }


def _paragraph(text: str) -> dict[str, typ.Any]:
    return {"type": "paragraph", "paragraph": {"rich_text": [{"plain_text": text}]}}


def _make_connector(
    *,
    query_status: int = 200,
    blocks: dict[str, list[dict[str, typ.Any]]] | None = None,
    editor: dict[str, str] | None = None,
    users: dict[str, str] | None = None,
) -> tuple[DocumentConnector, list[httpx.Request]]:
    requests: list[httpx.Request] = []
    block_map = blocks if blocks is not None else {"p1": [_paragraph(_LONG_TEXT)]}

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST":
            if query_status != 200:
                return httpx.Response(query_status, json={"message": "nope"})
            return httpx.Response(
                200,
                json={
                    "results": [
                        _page("p1", "Search v2", editor),
                        _page("p2", "Stub", editor),
                    ],
                    "has_more": False,
                    "next_cursor": None,
                },
            )
        if request.url.path.startswith("/v1/users/"):
            user_id = request.url.path.rsplit("/", 1)[-1]
            if users is None or user_id not in users:
                return httpx.Response(404, json={"message": "missing"})
            return httpx.Response(200, json={"id": user_id, "name": users[user_id]})
        page_id = request.url.path.split("/")[-2]
        if page_id not in block_map:
            return httpx.Response(404, json={"message": "missing"})
        return httpx.Response(
            200, json={"results": block_map[page_id], "has_more": False}
        )

    connector = DocumentConnector(
        DocumentConnectorConfig(api_key="secret", database_id="db-1", api_url=_API),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    return connector, requests


def test_fetch_pages_collects_text_and_metadata() -> None:
    """Pages carry their title, editor and concatenated block text."""
    connector, requests = _make_connector(
        blocks={"p1": [_paragraph("First."), _paragraph("Second.")], "p2": []}
    )

    pages = asyncio.run(connector.fetch_pages(window().since))

    assert [p.title for p in pages] == ["Search v2", "Stub"]
    assert pages[0].editor == "Jane Doe"
    assert pages[0].text == "First.\n\nSecond."
    query = json.loads(requests[0].content)
    assert query["filter"]["last_edited_time"] == {
        "on_or_after": "2025-03-13T09:00:00Z"
    }


def test_fetch_maps_pages_to_document_events() -> None:
    """Minimal pages get an empty excerpt; others a trimmed one."""
    connector, _ = _make_connector()

    result = asyncio.run(connector.fetch(window()))

    assert result.ok, "a missing block listing should not fail the source"
    first, second = result.events
    assert isinstance(first, DocumentSummary)
    assert first.excerpt.startswith("Search v2 replaces")
    assert second.excerpt == ""


def test_query_failure_becomes_failed_result() -> None:
    """A failing database query is reported through the result."""
    connector, _ = _make_connector(query_status=400)

    result = asyncio.run(connector.fetch(window()))

    assert result.events == ()
    assert len(result.errors) == 1


def test_page_title_falls_back_to_untitled() -> None:
    """Pages without a title property are Untitled."""
    assert page_title({"properties": {}}) == "Untitled"
    assert page_title(_page("p", "Roadmap")) == "Roadmap"


def test_block_text_reads_rich_text() -> None:
    """Only the block type's rich_text array is read."""
    assert block_text(_paragraph("hello")) == "hello"
    assert block_text({"type": "divider", "divider": {}}) == ""
    assert block_text({}) == ""


class TestDocumentPage:
    """Tests for DocumentPage helpers."""

    @pytest.mark.parametrize(
        ("text", "minimal"), [("", True), ("x" * 49, True), ("x" * 50, False)]
    )
    def test_is_minimal(self, text: str, *, minimal: bool) -> None:
        """Pages under fifty characters are minimal."""
        page = DocumentPage("p", "T", "", "Jane", NOW, text)

        assert page.is_minimal is minimal

    def test_excerpt_flattens_and_truncates(self) -> None:
        """Excerpts are single-line and capped with an ellipsis."""
        page = DocumentPage("p", "T", "", "Jane", NOW, "a\n\nb   c " + "d" * 400)

        excerpt = page.excerpt()

        assert excerpt.startswith("a b c d")
        assert excerpt.endswith("...")
        assert len(excerpt) == 303


def test_partial_editor_is_looked_up_once() -> None:
    """An editor given only by id is resolved through the users endpoint."""
    connector, requests = _make_connector(
        blocks={"p1": [], "p2": []},
        editor={"object": "user", "id": "u1"},
        users={"u1": "Jane Doe"},
    )

    pages = asyncio.run(connector.fetch_pages(window().since))

    assert [p.editor for p in pages] == ["Jane Doe", "Jane Doe"]
    lookups = [r for r in requests if r.url.path == "/v1/users/u1"]
    assert len(lookups) == 1


def test_failed_editor_lookup_is_unknown() -> None:
    """A user the integration cannot read is reported as unknown."""
    connector, _ = _make_connector(
        blocks={"p1": [], "p2": []}, editor={"object": "user", "id": "u9"}
    )

    pages = asyncio.run(connector.fetch_pages(window().since))

    assert [p.editor for p in pages] == ["unknown", "unknown"]

"""Notion document-store connector.

Pages of one database edited inside the window are mapped to
:class:`~huddle.activity.models.DocumentSummary` events carrying a short
plain-text excerpt. The full page text is available through
:meth:`DocumentConnector.fetch_pages` for callers that summarise pages
themselves.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

import httpx

from huddle.activity.models import UNKNOWN_ACTOR, ActivityWindow, DocumentSummary
from huddle.common.time import parse_optional_timestamp, to_iso_z
from huddle.logging import get_logger, log_info, log_warning

from ._http import as_dict, as_dict_list, decode_json, nested_str, send
from .errors import SourceError, SourceResponseShapeError
from .protocol import ConnectorResult

logger = get_logger(__name__)

SOURCE_NAME = "documents"
NOTION_VERSION = "2022-06-28"
EXCERPT_LIMIT = 300
MINIMAL_CONTENT_LENGTH = 50
UNTITLED = "Untitled"


@dc.dataclass(frozen=True, slots=True)
class DocumentConnectorConfig:
    """Configuration for :class:`DocumentConnector`."""

    api_key: str
    database_id: str
    api_url: str = "https://api.notion.com/v1"
    page_size: int = 10
    timeout_s: float = 30.0


@dc.dataclass(frozen=True, slots=True)
class DocumentPage:
    """A database page with its concatenated block text."""

    page_id: str
    title: str
    url: str
    editor: str
    last_edited_at: dt.datetime
    text: str

    @property
    def is_minimal(self) -> bool:
        """Return ``True`` when the page holds too little text to summarise."""
        return len(self.text) < MINIMAL_CONTENT_LENGTH

    def excerpt(self, limit: int = EXCERPT_LIMIT) -> str:
        """Return the first ``limit`` characters of the text on one line."""
        flat = " ".join(self.text.split())
        if len(flat) <= limit:
            return flat
        return f"{flat[:limit]}..."


def page_title(page: dict[str, typ.Any]) -> str:
    """Return the plain text of the page's title property."""
    for prop in as_dict(page.get("properties")).values():
        if not isinstance(prop, dict) or prop.get("type") != "title":
            continue
        parts = as_dict_list(prop.get("title"))
        title = "".join(str(part.get("plain_text") or "") for part in parts)
        if title:
            return title
    return UNTITLED


def block_text(block: dict[str, typ.Any]) -> str:
    """Return the plain text held by one block's ``rich_text`` array."""
    block_type = block.get("type")
    if not isinstance(block_type, str):
        return ""
    rich_text = as_dict_list(as_dict(block.get(block_type)).get("rich_text"))
    return "".join(str(part.get("plain_text") or "") for part in rich_text)


class DocumentConnector:
    """Collect recently edited pages from a Notion database."""

    name = SOURCE_NAME

    def __init__(
        self,
        config: DocumentConnectorConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store configuration and create the HTTP client when needed."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        """Return a summary event for every page edited in ``window``."""
        try:
            pages = await self.fetch_pages(window.since)
        except SourceError as exc:
            log_warning(
                logger,
                "Notion fetch failed for database %s: %s",
                self._config.database_id,
                exc,
            )
            return ConnectorResult.failed(SOURCE_NAME, exc)

        events = tuple(
            DocumentSummary(
                container=self._config.database_id,
                actor=page.editor,
                occurred_at=page.last_edited_at,
                title=page.title,
                excerpt="" if page.is_minimal else page.excerpt(),
                url=page.url,
            )
            for page in pages
        )
        return ConnectorResult(source=SOURCE_NAME, events=events)

    async def fetch_pages(self, since: dt.datetime) -> list[DocumentPage]:
        """Return pages edited on or after ``since``, newest first.

        Raises
        ------
        SourceError
            When the database query fails. Block fetch failures for one page
            are logged and leave that page's text empty.

        """
        pages: list[DocumentPage] = []
        editors: dict[str, str] = {}
        for raw in await self._query_database(since):
            page_id = raw.get("id")
            edited_at = parse_optional_timestamp(raw.get("last_edited_time"))
            if not isinstance(page_id, str) or edited_at is None:
                continue
            pages.append(
                DocumentPage(
                    page_id=page_id,
                    title=page_title(raw),
                    url=str(raw.get("url") or ""),
                    editor=await self._editor(raw, editors),
                    last_edited_at=edited_at,
                    text=await self._page_text(page_id),
                )
            )
        log_info(logger, "Found %d recently edited documents", len(pages))
        return pages

    async def _editor(self, page: dict[str, typ.Any], known: dict[str, str]) -> str:
        """Return the page editor's name, looking up partial user objects.

        Query results usually carry only the editor's id. Lookups are
        remembered in ``known`` and a failed lookup yields ``unknown``.
        """
        name = nested_str(page, "last_edited_by", "name")
        user_id = nested_str(page, "last_edited_by", "id")
        if name or not user_id:
            return name or UNKNOWN_ACTOR
        if user_id not in known:
            known[user_id] = await self._user_name(user_id)
        return known[user_id]

    async def _user_name(self, user_id: str) -> str:
        url = f"{self._config.api_url}/users/{user_id}"
        try:
            response = await send(self._client, "GET", url, source=SOURCE_NAME)
            user = as_dict(decode_json(response, source=SOURCE_NAME))
        except SourceError as exc:
            log_warning(logger, "Notion user lookup failed for %s: %s", user_id, exc)
            return UNKNOWN_ACTOR
        return nested_str(user, "name") or UNKNOWN_ACTOR

    async def _query_database(self, since: dt.datetime) -> list[dict[str, typ.Any]]:
        url = f"{self._config.api_url}/databases/{self._config.database_id}/query"
        body: dict[str, typ.Any] = {
            "filter": {
                "timestamp": "last_edited_time",
                "last_edited_time": {"on_or_after": to_iso_z(since)},
            },
            "sorts": [{"timestamp": "last_edited_time", "direction": "descending"}],
            "page_size": self._config.page_size,
        }
        results: list[dict[str, typ.Any]] = []
        while True:
            response = await send(
                self._client, "POST", url, source=SOURCE_NAME, json=body
            )
            payload = as_dict(decode_json(response, source=SOURCE_NAME))
            if "results" not in payload:
                raise SourceResponseShapeError.missing(SOURCE_NAME, "results")
            results.extend(as_dict_list(payload.get("results")))
            cursor = payload.get("next_cursor")
            if not payload.get("has_more") or not isinstance(cursor, str):
                return results
            body = {**body, "start_cursor": cursor}

    async def _page_text(self, page_id: str) -> str:
        url = f"{self._config.api_url}/blocks/{page_id}/children"
        params: dict[str, str | int] = {"page_size": 100}
        parts: list[str] = []
        try:
            while True:
                response = await send(
                    self._client, "GET", url, source=SOURCE_NAME, params=params
                )
                payload = as_dict(decode_json(response, source=SOURCE_NAME))
                parts.extend(
                    text
                    for block in as_dict_list(payload.get("results"))
                    if (text := block_text(block))
                )
                cursor = payload.get("next_cursor")
                if not payload.get("has_more") or not isinstance(cursor, str):
                    break
                params = {"page_size": 100, "start_cursor": cursor}
        except SourceError as exc:
            log_warning(
                logger, "Notion block fetch failed for page %s: %s", page_id, exc
            )
        return "\n\n".join(parts)


__all__ = [
    "EXCERPT_LIMIT",
    "MINIMAL_CONTENT_LENGTH",
    "NOTION_VERSION",
    "SOURCE_NAME",
    "DocumentConnector",
    "DocumentConnectorConfig",
    "DocumentPage",
    "block_text",
    "page_title",
]

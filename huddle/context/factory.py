"""Assemble a :class:`ContextBuilder` from settings and credentials."""

from __future__ import annotations

import contextlib
import typing as typ

from huddle.activity.authors import AuthorMap
from huddle.connectors.documents import DocumentConnector, DocumentConnectorConfig
from huddle.connectors.tickets import TicketConnector, TicketConnectorConfig
from huddle.generation.factory import create_structurer

from .builder import SPEC_SUMMARY_MAX_TOKENS, ContextBuilder, ContextSources

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from huddle.config import Credentials, Settings
    from huddle.generation.chat import ChatCompletionTextGenerator

__all__ = ["open_context_builder"]


@contextlib.asynccontextmanager
async def open_context_builder(
    settings: Settings, credentials: Credentials
) -> cabc.AsyncIterator[ContextBuilder]:
    """Yield a builder over whichever sources are configured.

    A source missing either its setting or its credential is left out and
    its section is skipped.

    Raises
    ------
    GenerationConfigError
        If the summarizing backend is misconfigured.
    """
    resources: list[
        TicketConnector | DocumentConnector | ChatCompletionTextGenerator
    ] = []
    try:
        tickets: TicketConnector | None = None
        if credentials.linear_api_key and settings.tickets.team_id.strip():
            tickets = TicketConnector(
                TicketConnectorConfig(
                    api_key=credentials.linear_api_key,
                    team_id=settings.tickets.team_id.strip(),
                    workspace=settings.tickets.workspace,
                )
            )
            resources.append(tickets)

        documents: DocumentConnector | None = None
        summarizer: ChatCompletionTextGenerator | None = None
        if credentials.notion_api_key and settings.documents.database_id.strip():
            documents = DocumentConnector(
                DocumentConnectorConfig(
                    api_key=credentials.notion_api_key,
                    database_id=settings.documents.database_id.strip(),
                )
            )
            resources.append(documents)
            summarizer = create_structurer(
                api_key=credentials.openrouter_api_key,
                max_tokens=SPEC_SUMMARY_MAX_TOKENS,
            )
            if summarizer is not None:
                resources.append(summarizer)

        yield ContextBuilder(
            ContextSources(
                tickets=tickets,
                documents=documents,
                summarizer=summarizer,
                author_map=AuthorMap(settings.tickets.author_map),
            )
        )
    finally:
        for resource in resources:
            await resource.aclose()

"""Linear ticket-tracker connector.

Fetches team issues updated inside the window together with the comments
created inside it. Tickets without an assignee map to ``Unassigned``; only
the most recent comments are kept so a noisy ticket cannot crowd out the
rest of the digest.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import httpx

from huddle.activity.models import (
    UNASSIGNED,
    UNKNOWN_ACTOR,
    ActivityEvent,
    ActivityWindow,
    Ticket,
    TicketComment,
)
from huddle.common.time import parse_optional_timestamp, to_iso_z
from huddle.logging import get_logger, log_info, log_warning

from ._http import as_dict, as_dict_list, nested_str, post_graphql
from .errors import SourceError, SourceResponseShapeError
from .protocol import ConnectorResult

logger = get_logger(__name__)

SOURCE_NAME = "tickets"
COMMENT_BODY_LIMIT = 500
MAX_RECENT_COMMENTS = 20
ACTIVE_STATES: typ.Final = ("In Progress", "Todo", "In Review")

_ISSUE_FIELDS = """
        id
        identifier
        title
        url
        priorityLabel
        createdAt
        updatedAt
        completedAt
        state { name }
        assignee { displayName name }
"""

_RECENT_ISSUES_QUERY = (
    """
query($teamId: String!, $since: DateTimeOrDuration!, $after: String) {
  team(id: $teamId) {
    issues(
      filter: { updatedAt: { gte: $since } }
      first: 100
      after: $after
      orderBy: updatedAt
    ) {
      pageInfo { hasNextPage endCursor }
      nodes {"""
    + _ISSUE_FIELDS
    + """
        comments(filter: { createdAt: { gte: $since } }, first: 50) {
          pageInfo { hasNextPage endCursor }
          nodes {
            body
            createdAt
            user { displayName name }
          }
        }
      }
    }
  }
}
"""
)

_ISSUE_COMMENTS_QUERY = """
query($issueId: String!, $since: DateTimeOrDuration!, $after: String) {
  issue(id: $issueId) {
    comments(filter: { createdAt: { gte: $since } }, first: 50, after: $after) {
      pageInfo { hasNextPage endCursor }
      nodes {
        body
        createdAt
        user { displayName name }
      }
    }
  }
}
"""

_ACTIVE_ISSUES_QUERY = (
    """
query($teamId: String!, $states: [String!], $after: String) {
  team(id: $teamId) {
    issues(
      filter: { state: { name: { in: $states } } }
      first: 100
      after: $after
      orderBy: updatedAt
    ) {
      pageInfo { hasNextPage endCursor }
      nodes {"""
    + _ISSUE_FIELDS
    + """
      }
    }
  }
}
"""
)


@dc.dataclass(frozen=True, slots=True)
class TicketConnectorConfig:
    """Configuration for :class:`TicketConnector`.

    Attributes
    ----------
    api_key
        Linear personal API key, sent verbatim in ``Authorization``.
    team_id
        Team whose issues are collected.
    workspace
        Linear workspace slug used to build issue links when the API does
        not return one.

    """

    api_key: str
    team_id: str
    workspace: str = ""
    endpoint: str = "https://api.linear.app/graphql"
    timeout_s: float = 30.0


@dc.dataclass(frozen=True, slots=True)
class ActiveTicket:
    """A ticket currently in an active workflow state."""

    identifier: str
    title: str
    status: str
    assignee: str


def _truncate(body: str, limit: int = COMMENT_BODY_LIMIT) -> str:
    if len(body) <= limit:
        return body
    return f"{body[:limit]}..."


def _assignee(node: dict[str, typ.Any]) -> str:
    return (
        nested_str(node, "assignee", "displayName")
        or nested_str(node, "assignee", "name")
        or UNASSIGNED
    )


class TicketConnector:
    """Collect recent ticket activity from the Linear GraphQL API."""

    name = SOURCE_NAME

    def __init__(
        self,
        config: TicketConnectorConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store configuration and create the HTTP client when needed."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": config.api_key,
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _ticket_url(self, node: dict[str, typ.Any], identifier: str) -> str:
        url = nested_str(node, "url")
        if url:
            return url
        if self._config.workspace:
            return f"https://linear.app/{self._config.workspace}/issue/{identifier}"
        return ""

    async def _issue_nodes(
        self, query: str, variables: dict[str, typ.Any]
    ) -> list[dict[str, typ.Any]]:
        nodes: list[dict[str, typ.Any]] = []
        after: str | None = None
        while True:
            data = await post_graphql(
                self._client,
                self._config.endpoint,
                query,
                {**variables, "teamId": self._config.team_id, "after": after},
                source=SOURCE_NAME,
            )
            team = data.get("team")
            if not isinstance(team, dict):
                raise SourceResponseShapeError.missing(SOURCE_NAME, "team")
            connection = as_dict(team.get("issues"))
            nodes.extend(as_dict_list(connection.get("nodes")))
            page_info = as_dict(connection.get("pageInfo"))
            after = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not after:
                return nodes

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        """Return tickets and ticket comments touched in ``window``."""
        try:
            nodes = await self._issue_nodes(
                _RECENT_ISSUES_QUERY, {"since": to_iso_z(window.since)}
            )
        except SourceError as exc:
            log_warning(
                logger,
                "Linear fetch failed for team %s: %s",
                self._config.team_id,
                exc,
            )
            return ConnectorResult.failed(SOURCE_NAME, exc)

        since = to_iso_z(window.since)
        tickets: list[ActivityEvent] = []
        comments: list[TicketComment] = []
        errors: list[SourceError] = []
        for node in nodes:
            ticket = self._ticket_from_node(node)
            if ticket is None:
                continue
            tickets.append(ticket)
            comment_nodes = await self._comment_nodes(node, since, errors)
            comments.extend(self._comments_from_nodes(ticket, comment_nodes))

        comments.sort(key=lambda comment: comment.occurred_at, reverse=True)
        recent = comments[:MAX_RECENT_COMMENTS]
        log_info(
            logger,
            "Found %d tickets and %d comments (kept %d)",
            len(tickets),
            len(comments),
            len(recent),
        )
        return ConnectorResult(
            source=SOURCE_NAME, events=(*tickets, *recent), errors=tuple(errors)
        )

    async def fetch_active_tickets(self) -> list[ActiveTicket]:
        """Return tickets in one of :data:`ACTIVE_STATES`.

        Raises
        ------
        SourceError
            When the API call fails; callers decide whether that is fatal.

        """
        nodes = await self._issue_nodes(
            _ACTIVE_ISSUES_QUERY, {"states": list(ACTIVE_STATES)}
        )
        return [
            ActiveTicket(
                identifier=identifier,
                title=str(node.get("title") or ""),
                status=nested_str(node, "state", "name") or "",
                assignee=_assignee(node),
            )
            for node in nodes
            if (identifier := nested_str(node, "identifier"))
        ]

    def _ticket_from_node(self, node: dict[str, typ.Any]) -> Ticket | None:
        identifier = nested_str(node, "identifier")
        created_at = parse_optional_timestamp(node.get("createdAt"))
        updated_at = parse_optional_timestamp(node.get("updatedAt"))
        if identifier is None or created_at is None:
            return None
        updated_at = updated_at or created_at
        return Ticket(
            container=self._config.team_id,
            actor=_assignee(node),
            occurred_at=updated_at,
            identifier=identifier,
            title=str(node.get("title") or ""),
            status=nested_str(node, "state", "name") or "",
            priority_label=str(node.get("priorityLabel") or "No priority"),
            created_at=created_at,
            updated_at=updated_at,
            completed_at=parse_optional_timestamp(node.get("completedAt")),
            url=self._ticket_url(node, identifier),
        )

    async def _comment_nodes(
        self,
        node: dict[str, typ.Any],
        since: str,
        errors: list[SourceError],
    ) -> list[dict[str, typ.Any]]:
        """Return every in-window comment of an issue, following cursors."""
        connection = as_dict(node.get("comments"))
        comment_nodes = list(as_dict_list(connection.get("nodes")))
        page_info = as_dict(connection.get("pageInfo"))
        issue_id = nested_str(node, "id")
        after = page_info.get("endCursor")
        try:
            while page_info.get("hasNextPage") and after and issue_id:
                data = await post_graphql(
                    self._client,
                    self._config.endpoint,
                    _ISSUE_COMMENTS_QUERY,
                    {"issueId": issue_id, "since": since, "after": after},
                    source=SOURCE_NAME,
                )
                connection = as_dict(as_dict(data.get("issue")).get("comments"))
                comment_nodes.extend(as_dict_list(connection.get("nodes")))
                page_info = as_dict(connection.get("pageInfo"))
                after = page_info.get("endCursor")
        except SourceError as exc:
            log_warning(
                logger,
                "Linear comment paging failed for %s: %s",
                nested_str(node, "identifier") or issue_id,
                exc,
            )
            errors.append(exc)
        return comment_nodes

    def _comments_from_nodes(
        self, ticket: Ticket, comment_nodes: list[dict[str, typ.Any]]
    ) -> list[TicketComment]:
        comments: list[TicketComment] = []
        for comment in comment_nodes:
            created_at = parse_optional_timestamp(comment.get("createdAt"))
            if created_at is None:
                continue
            author = (
                nested_str(comment, "user", "displayName")
                or nested_str(comment, "user", "name")
                or UNKNOWN_ACTOR
            )
            comments.append(
                TicketComment(
                    container=ticket.container,
                    actor=author,
                    occurred_at=created_at,
                    ticket_identifier=ticket.identifier,
                    ticket_title=ticket.title,
                    body=_truncate(str(comment.get("body") or "")),
                )
            )
        return comments


__all__ = [
    "ACTIVE_STATES",
    "COMMENT_BODY_LIMIT",
    "MAX_RECENT_COMMENTS",
    "SOURCE_NAME",
    "ActiveTicket",
    "TicketConnector",
    "TicketConnectorConfig",
]

"""Source connectors mapping external APIs onto canonical activity events."""

from __future__ import annotations

from .documents import DocumentConnector, DocumentConnectorConfig, DocumentPage
from .errors import (
    SourceAPIError,
    SourceConfigError,
    SourceError,
    SourceResponseShapeError,
)
from .github import GitHubConnector, GitHubConnectorConfig, RepositoryRef
from .protocol import ConnectorResult, SourceConnector
from .tickets import ActiveTicket, TicketConnector, TicketConnectorConfig

__all__ = [
    "ActiveTicket",
    "ConnectorResult",
    "DocumentConnector",
    "DocumentConnectorConfig",
    "DocumentPage",
    "GitHubConnector",
    "GitHubConnectorConfig",
    "RepositoryRef",
    "SourceAPIError",
    "SourceConfigError",
    "SourceConnector",
    "SourceError",
    "SourceResponseShapeError",
    "TicketConnector",
    "TicketConnectorConfig",
]

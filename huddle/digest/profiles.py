"""Run profiles: which sources, prompts and delivery target a digest uses.

Two profiles exist. ``activity`` is the daily code-activity digest: GitHub
is required configuration, while the ticket and document sources are added
only when both their setting and credential are present. ``tickets`` is the
ticket-tracker digest: its single source is mandatory, so a fetch failure
ends the run.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from huddle.activity.authors import AuthorMap
from huddle.config import (
    Credentials,
    Settings,
    is_configured_url,
)
from huddle.connectors import (
    DocumentConnector,
    DocumentConnectorConfig,
    GitHubConnector,
    GitHubConnectorConfig,
    SourceConfigError,
    TicketConnector,
    TicketConnectorConfig,
)
from huddle.connectors import github as github_source
from huddle.connectors import tickets as ticket_source
from huddle.logging import get_logger, log_info
from huddle.summary.prompts import (
    ACTIVITY_PROMPTS,
    DEFAULT_TICKET_WORKSPACE,
    TICKET_PROMPTS,
    PromptContext,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from huddle.connectors import SourceConnector
    from huddle.summary.prompts import PromptSet

logger = get_logger(__name__)


class ProfileName(enum.StrEnum):
    """Names of the supported run profiles."""

    ACTIVITY = "activity"
    TICKETS = "tickets"


@dc.dataclass(frozen=True, slots=True)
class RunProfile:
    """Static description of one kind of scheduled run.

    Attributes
    ----------
    name
        Profile identifier used in logs and the CLI.
    prompts
        Structuring and formatting prompt builders.
    mandatory_sources
        Connector names whose fetch failure is fatal for this profile.
    webhook_setting
        Name of the ``delivery`` setting holding the target webhook.

    """

    name: ProfileName
    prompts: PromptSet
    mandatory_sources: frozenset[str]
    webhook_setting: str

    def webhook_url(self, settings: Settings) -> str:
        """Return the configured webhook URL, or ``""`` when unset."""
        url = getattr(settings.delivery, self.webhook_setting)
        return url if is_configured_url(url) else ""

    def structuring_max_tokens(self, settings: Settings) -> int:
        """Return the default structuring budget for this profile.

        ``HUDDLE_STRUCTURING_MAX_TOKENS`` overrides it when set.
        """
        if self.name is ProfileName.TICKETS:
            return settings.generation.ticket_max_tokens
        return settings.generation.activity_max_tokens

    def author_map(self, settings: Settings) -> AuthorMap:
        """Return the identity map applied when rendering this profile."""
        tickets = AuthorMap(settings.tickets.author_map)
        if self.name is ProfileName.TICKETS:
            return tickets
        return AuthorMap(settings.github.author_map).merged(tickets)

    def prompt_context(
        self, settings: Settings, *, today: dt.date, project_context: str = ""
    ) -> PromptContext:
        """Return the static prompt context for a run on ``today``."""
        return PromptContext(
            today=today,
            project_context=project_context,
            author_map=AuthorMap(settings.github.author_map),
            ticket_author_map=AuthorMap(settings.tickets.author_map),
            ticket_pattern=settings.ticket_pattern,
            ticket_workspace=settings.tickets.workspace or DEFAULT_TICKET_WORKSPACE,
        )

    def build_connectors(
        self, settings: Settings, credentials: Credentials
    ) -> list[SourceConnector]:
        """Create the connectors this profile queries.

        Raises
        ------
        SourceConfigError
            If a source the profile cannot run without is not configured.

        """
        if self.name is ProfileName.TICKETS:
            return [_ticket_connector(settings, credentials, required=True)]

        connectors: list[SourceConnector] = [_github_connector(settings, credentials)]
        if (ticket := _ticket_connector(settings, credentials)) is not None:
            connectors.append(ticket)
        if (document := _document_connector(settings, credentials)) is not None:
            connectors.append(document)
        return connectors


def _github_connector(settings: Settings, credentials: Credentials) -> SourceConnector:
    if not credentials.github_token:
        raise SourceConfigError.missing_credential(
            github_source.SOURCE_NAME, "HUDDLE_GITHUB_TOKEN"
        )
    if not settings.github.org.strip():
        raise SourceConfigError.missing_setting(github_source.SOURCE_NAME, "github.org")
    return GitHubConnector(
        GitHubConnectorConfig(
            token=credentials.github_token,
            org=settings.github.org.strip(),
            extra_repos=tuple(settings.github.extra_repos),
        )
    )


@typ.overload
def _ticket_connector(
    settings: Settings, credentials: Credentials, *, required: typ.Literal[True]
) -> SourceConnector: ...


@typ.overload
def _ticket_connector(
    settings: Settings, credentials: Credentials, *, required: bool = False
) -> SourceConnector | None: ...


def _ticket_connector(
    settings: Settings, credentials: Credentials, *, required: bool = False
) -> SourceConnector | None:
    team_id = settings.tickets.team_id.strip()
    if not credentials.linear_api_key or not team_id:
        if required:
            if not credentials.linear_api_key:
                raise SourceConfigError.missing_credential(
                    ticket_source.SOURCE_NAME, "HUDDLE_LINEAR_API_KEY"
                )
            raise SourceConfigError.missing_setting(
                ticket_source.SOURCE_NAME, "tickets.team_id"
            )
        log_info(logger, "Ticket tracker not configured; skipping ticket activity")
        return None
    return TicketConnector(
        TicketConnectorConfig(
            api_key=credentials.linear_api_key,
            team_id=team_id,
            workspace=settings.tickets.workspace,
        )
    )


def _document_connector(
    settings: Settings, credentials: Credentials
) -> SourceConnector | None:
    database_id = settings.documents.database_id.strip()
    if not credentials.notion_api_key or not database_id:
        log_info(logger, "Document store not configured; skipping documents")
        return None
    return DocumentConnector(
        DocumentConnectorConfig(
            api_key=credentials.notion_api_key, database_id=database_id
        )
    )


ACTIVITY_PROFILE: typ.Final = RunProfile(
    name=ProfileName.ACTIVITY,
    prompts=ACTIVITY_PROMPTS,
    mandatory_sources=frozenset(),
    webhook_setting="webhook_url",
)

TICKETS_PROFILE: typ.Final = RunProfile(
    name=ProfileName.TICKETS,
    prompts=TICKET_PROMPTS,
    mandatory_sources=frozenset({ticket_source.SOURCE_NAME}),
    webhook_setting="ticket_webhook_url",
)

PROFILES: typ.Final[dict[ProfileName, RunProfile]] = {
    ProfileName.ACTIVITY: ACTIVITY_PROFILE,
    ProfileName.TICKETS: TICKETS_PROFILE,
}


__all__ = [
    "ACTIVITY_PROFILE",
    "PROFILES",
    "TICKETS_PROFILE",
    "ProfileName",
    "RunProfile",
]

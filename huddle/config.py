"""Settings file and credential loading.

Settings live in a YAML 1.2 file (JSON is valid YAML 1.2), parsed with
``ruamel.yaml`` and converted into typed structures with ``msgspec``.
Secrets never live in the file; they come from ``HUDDLE_*`` environment
variables through :class:`Credentials`.

Example settings file::

    github:
      org: acme
      extra_repos: [partner/shared-lib]
      author_map: {octocat: Mona}
    tickets:
      team_id: 4f1c...
      workspace: acme
    delivery:
      webhook_url: https://hooks.slack.com/services/...
    ticket_pattern: ENG-123

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from huddle.generation.command import DEFAULT_COMMAND, DEFAULT_TIMEOUT_S

YAML_VERSION = (1, 2)
DEFAULT_SETTINGS_PATH = "huddle.yaml"
DEFAULT_CONTEXT_PATH = "context.md"
DEFAULT_LOOKBACK_HOURS = 24
ACTIVITY_STRUCTURING_MAX_TOKENS = 2500
TICKET_STRUCTURING_MAX_TOKENS = 2000

# Webhook URLs copied from setup templates contain this placeholder.
_PLACEHOLDER_MARKER = "XXXXX"


class SettingsError(ValueError):
    """Raised when the settings file is missing, unreadable or invalid."""

    def __init__(self, issues: list[str]) -> None:
        """Capture validation issues whilst preserving the aggregated message."""
        message = "\n".join(issues)
        super().__init__(message)
        self.issues = issues


class GitHubSettings(msgspec.Struct, kw_only=True):
    """Code-host settings.

    Attributes
    ----------
    org : str
        Organisation whose repositories are scanned.
    extra_repos : list[str]
        Additional ``owner/name`` repositories outside the organisation.
    author_map : dict[str, str]
        Login to display-name mapping.

    """

    org: str = ""
    extra_repos: list[str] = msgspec.field(default_factory=list)
    author_map: dict[str, str] = msgspec.field(default_factory=dict)


class TicketSettings(msgspec.Struct, kw_only=True):
    """Ticket-tracker settings.

    Attributes
    ----------
    team_id : str
        Team whose tickets are collected; blank disables the connector.
    workspace : str
        Workspace slug used in ticket links.
    author_map : dict[str, str]
        Tracker display name to preferred name mapping.

    """

    team_id: str = ""
    workspace: str = ""
    author_map: dict[str, str] = msgspec.field(default_factory=dict)


class DocumentSettings(msgspec.Struct, kw_only=True):
    """Document-store settings; a blank ``database_id`` disables the source."""

    database_id: str = ""


class DeliverySettings(msgspec.Struct, kw_only=True):
    """Webhook targets for the activity and ticket digests."""

    webhook_url: str = ""
    ticket_webhook_url: str = ""


class GenerationSettings(msgspec.Struct, kw_only=True):
    """Text-generation settings.

    Attributes
    ----------
    command : str
        Formatting command; the prompt is piped to its stdin.
    timeout_s : float
        Per-call time budget for both stages.
    activity_max_tokens : int
        Structuring completion budget for the activity digest.
    ticket_max_tokens : int
        Structuring completion budget for the ticket digest.

    """

    command: str = DEFAULT_COMMAND
    timeout_s: float = DEFAULT_TIMEOUT_S
    activity_max_tokens: int = ACTIVITY_STRUCTURING_MAX_TOKENS
    ticket_max_tokens: int = TICKET_STRUCTURING_MAX_TOKENS


class Settings(msgspec.Struct, kw_only=True):
    """Root of the settings file."""

    github: GitHubSettings = msgspec.field(default_factory=GitHubSettings)
    tickets: TicketSettings = msgspec.field(default_factory=TicketSettings)
    documents: DocumentSettings = msgspec.field(default_factory=DocumentSettings)
    delivery: DeliverySettings = msgspec.field(default_factory=DeliverySettings)
    generation: GenerationSettings = msgspec.field(
        default_factory=GenerationSettings
    )
    ticket_pattern: str = ""
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS
    context_path: str = DEFAULT_CONTEXT_PATH


def is_configured_url(url: str) -> bool:
    """Return ``True`` for a non-blank URL that is not a template placeholder."""
    return bool(url.strip()) and _PLACEHOLDER_MARKER not in url


def resolve_settings_path(path: Path | str | None = None) -> Path:
    """Return ``path``, else ``HUDDLE_CONFIG``, else ``huddle.yaml``."""
    if path is not None:
        return Path(path)
    return Path(os.environ.get("HUDDLE_CONFIG") or DEFAULT_SETTINGS_PATH)


def load_settings(path: Path | str | None = None) -> Settings:
    """Parse and validate the settings file.

    Parameters
    ----------
    path
        Explicit settings path. Defaults to :func:`resolve_settings_path`.

    Raises
    ------
    SettingsError
        If the file cannot be read or parsed, or fails validation.

    """
    path_obj = resolve_settings_path(path)
    yaml = _yaml()

    try:
        loaded = yaml.load(path_obj.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SettingsError([f"settings file not found: {path_obj}"]) from exc
    except (OSError, YAMLError) as exc:
        raise SettingsError([f"failed to parse YAML: {exc}"]) from exc

    if loaded is None:
        return Settings()

    try:
        settings = msgspec.convert(loaded, type=Settings)
    except msgspec.ValidationError as exc:
        raise SettingsError([f"schema validation failed: {exc}"]) from exc

    return validate_settings(settings)


def validate_settings(settings: Settings) -> Settings:
    """Return ``settings`` when its values are usable, else raise."""
    issues: list[str] = []
    if settings.lookback_hours <= 0:
        issues.append("lookback_hours must be a positive integer")
    if settings.generation.timeout_s <= 0:
        issues.append("generation.timeout_s must be a positive number")
    if not settings.generation.command.strip():
        issues.append("generation.command must be non-empty")
    for key in ("activity_max_tokens", "ticket_max_tokens"):
        if getattr(settings.generation, key) <= 0:
            issues.append(f"generation.{key} must be a positive integer")
    issues.extend(
        f"github.extra_repos entry {slug!r} is not in owner/name form"
        for slug in settings.github.extra_repos
        if slug.count("/") != 1 or not all(slug.split("/"))
    )
    if issues:
        raise SettingsError(issues)
    return settings


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


@dc.dataclass(frozen=True, slots=True)
class Credentials:
    """Secrets read from the environment.

    Blank values mean "not configured"; each consumer decides whether that
    disables a feature or is fatal.
    """

    github_token: str = ""
    linear_api_key: str = ""
    notion_api_key: str = ""
    openrouter_api_key: str = ""
    slack_bot_token: str = ""
    slack_signing_secret: str = ""

    @classmethod
    def from_env(cls) -> Credentials:
        """Read every ``HUDDLE_*`` credential variable."""
        return cls(
            github_token=_env("HUDDLE_GITHUB_TOKEN"),
            linear_api_key=_env("HUDDLE_LINEAR_API_KEY"),
            notion_api_key=_env("HUDDLE_NOTION_API_KEY"),
            openrouter_api_key=_env("HUDDLE_OPENROUTER_API_KEY"),
            slack_bot_token=_env("HUDDLE_SLACK_BOT_TOKEN"),
            slack_signing_secret=_env("HUDDLE_SLACK_SIGNING_SECRET"),
        )


__all__ = [
    "ACTIVITY_STRUCTURING_MAX_TOKENS",
    "DEFAULT_CONTEXT_PATH",
    "DEFAULT_LOOKBACK_HOURS",
    "DEFAULT_SETTINGS_PATH",
    "TICKET_STRUCTURING_MAX_TOKENS",
    "Credentials",
    "DeliverySettings",
    "DocumentSettings",
    "GenerationSettings",
    "GitHubSettings",
    "Settings",
    "SettingsError",
    "TicketSettings",
    "is_configured_url",
    "load_settings",
    "resolve_settings_path",
    "validate_settings",
]

"""Command-line entry point for scheduled runs and the assistant server.

Usage::

    huddle digest --dry-run
    huddle tickets --hours 48
    huddle context --config ops/huddle.yaml
    huddle serve

Every command exits 0 on success (including "no activity") and 1 on a
fatal failure.
"""

from __future__ import annotations

import asyncio
import os
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from huddle import __version__
from huddle.config import Credentials, SettingsError, load_settings
from huddle.connectors.errors import SourceConfigError
from huddle.context.builder import read_context
from huddle.context.factory import open_context_builder
from huddle.digest.factory import open_digest_service
from huddle.digest.profiles import ACTIVITY_PROFILE, TICKETS_PROFILE
from huddle.generation.errors import GenerationConfigError
from huddle.logging import configure_logging, get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    from huddle.config import Settings
    from huddle.digest.profiles import RunProfile
    from huddle.digest.service import DigestRunResult

logger = get_logger(__name__)

app = App(
    name="huddle",
    help="Daily developer-activity digests and a chat assistant",
    version=__version__,
)

ConfigOption = typ.Annotated[Path | None, Parameter(env_var="HUDDLE_CONFIG")]


def _configure_logging() -> None:
    configure_logging(os.environ.get("HUDDLE_LOG_LEVEL", "INFO"))


def _report(result: DigestRunResult, *, dry_run: bool) -> int:
    if dry_run and result.pipeline is not None:
        print(result.format_dry_run())
    for failure in result.failures:
        print(failure.describe(), file=sys.stderr)
    return result.exit_code


async def _run_digest(
    settings: Settings,
    profile: RunProfile,
    *,
    hours: int,
    dry_run: bool,
) -> DigestRunResult:
    async with open_digest_service(
        settings, Credentials.from_env(), profile
    ) as service:
        return await service.run(hours=hours, dry_run=dry_run)


def _configuration_failure(exc: Exception) -> int:
    log_error(logger, "Configuration error: %s", exc)
    print(f"error: configuration failure: {exc}", file=sys.stderr)
    return 1


def _digest_command(
    profile: RunProfile, *, config: Path | None, hours: int | None, dry_run: bool
) -> int:
    _configure_logging()
    try:
        if hours is not None and hours <= 0:
            raise SettingsError([f"--hours must be a positive integer, got {hours}"])
        settings = load_settings(config)
        result = asyncio.run(
            _run_digest(
                settings,
                profile,
                hours=hours if hours is not None else settings.lookback_hours,
                dry_run=dry_run,
            )
        )
    except (SettingsError, SourceConfigError, GenerationConfigError) as exc:
        return _configuration_failure(exc)
    return _report(result, dry_run=dry_run)


@app.command
def digest(
    *,
    dry_run: bool = False,
    hours: int | None = None,
    config: ConfigOption = None,
) -> int:
    """Collect, summarise and deliver the code-activity digest.

    Parameters
    ----------
    dry_run
        Print the report instead of delivering it.
    hours
        Lookback window; defaults to ``lookback_hours`` from settings.
    config
        Settings file path.

    """
    return _digest_command(
        ACTIVITY_PROFILE, config=config, hours=hours, dry_run=dry_run
    )


@app.command
def tickets(
    *,
    dry_run: bool = False,
    hours: int | None = None,
    config: ConfigOption = None,
) -> int:
    """Collect, summarise and deliver the ticket-tracker digest.

    Parameters
    ----------
    dry_run
        Print the report instead of delivering it.
    hours
        Lookback window; defaults to ``lookback_hours`` from settings.
    config
        Settings file path.

    """
    return _digest_command(
        TICKETS_PROFILE, config=config, hours=hours, dry_run=dry_run
    )


async def _build_context(settings: Settings) -> str:
    existing = read_context(settings.context_path)
    async with open_context_builder(settings, Credentials.from_env()) as builder:
        return await builder.build(existing)


@app.command
def context(*, dry_run: bool = False, config: ConfigOption = None) -> int:
    """Regenerate the auto-generated section of the project context file.

    Parameters
    ----------
    dry_run
        Print the new contents instead of writing the file.
    config
        Settings file path.

    """
    _configure_logging()
    try:
        settings = load_settings(config)
        content = asyncio.run(_build_context(settings))
    except (SettingsError, GenerationConfigError) as exc:
        return _configuration_failure(exc)

    if dry_run:
        print(content)
        return 0

    Path(settings.context_path).write_text(content, encoding="utf-8")
    log_info(logger, "Wrote %s (%d chars)", settings.context_path, len(content))
    return 0


@app.command
def serve() -> int:
    """Start the assistant server (configured through ``HUDDLE_*`` variables)."""
    from huddle.runtime import main as run_server

    run_server()
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())

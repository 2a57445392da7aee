"""Huddle runtime entrypoint for the assistant server.

This module provides the ASGI application factory. It delegates to
:func:`huddle.api.app.create_app` for application construction while
keeping the ``huddle.runtime:create_app`` Granian entrypoint stable.

When ``HUDDLE_SLACK_BOT_TOKEN`` is set, the runtime loads the settings file
and builds the assistant (activity cache, answering pipeline, Slack
replier) so the app includes ``POST /slack/events``. Otherwise it starts in
health-only mode.

Configuration is driven by environment variables:

- ``HUDDLE_HOST``: Bind address (default ``0.0.0.0``)
- ``HUDDLE_PORT``: Listen port (default ``8080``)
- ``HUDDLE_LOG_LEVEL``: Log level (default ``INFO``)
- ``HUDDLE_CONFIG``: Settings file path (default ``huddle.yaml``)
- ``HUDDLE_SLACK_BOT_TOKEN``: Bot token (optional; enables the assistant)
- ``HUDDLE_SLACK_SIGNING_SECRET``: Request signing secret (optional)

Run the service directly with ``python -m huddle.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from huddle.api.health.resources import HealthResource, ReadyResource
from huddle.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

    from huddle.assistant.cache import CacheEntry, Populator
    from huddle.config import Credentials, Settings

__all__ = ["HealthResource", "ReadyResource", "create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        # Use error() not exception() - validation failures need no traceback
        log_error(
            logger,
            "Invalid HUDDLE_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _activity_populator(
    settings: Settings, credentials: Credentials
) -> Populator:
    """Return a coroutine function collecting activity for the cache."""
    from huddle.assistant.cache import CacheEntry
    from huddle.digest.factory import open_digest_service
    from huddle.digest.profiles import ACTIVITY_PROFILE

    async def populate() -> CacheEntry | None:
        async with open_digest_service(
            settings, credentials, ACTIVITY_PROFILE
        ) as service:
            result = await service.run(hours=settings.lookback_hours, dry_run=True)
        return CacheEntry.from_run(result)

    return populate


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    When ``HUDDLE_SLACK_BOT_TOKEN`` is set, builds the assistant so the
    ``POST /slack/events`` endpoint is available. Otherwise only
    ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    from huddle.api.app import create_app as _create_api_app
    from huddle.config import Credentials

    credentials = Credentials.from_env()
    if not credentials.slack_bot_token:
        log_info(logger, "HUDDLE_SLACK_BOT_TOKEN not set; starting health-only")
        return _create_api_app()

    from huddle.api.app import AppDependencies
    from huddle.assistant.cache import ActivityCache
    from huddle.assistant.service import AssistantService
    from huddle.common.time import utcnow
    from huddle.config import load_settings
    from huddle.context.builder import read_context
    from huddle.delivery.slack import SlackThreadReplier
    from huddle.digest.profiles import ACTIVITY_PROFILE
    from huddle.generation.factory import create_formatter
    from huddle.summary.pipeline import SummaryPipeline

    settings = load_settings()
    assistant = AssistantService(
        cache=ActivityCache(_activity_populator(settings, credentials)),
        pipeline=SummaryPipeline(
            create_formatter(
                settings.generation.command, timeout_s=settings.generation.timeout_s
            ),
            timeout_s=settings.generation.timeout_s,
        ),
        replier=SlackThreadReplier(credentials.slack_bot_token),
        prompt_context=ACTIVITY_PROFILE.prompt_context(
            settings,
            today=utcnow().date(),
            project_context=read_context(settings.context_path),
        ),
    )
    if not credentials.slack_signing_secret:
        log_warning(
            logger, "HUDDLE_SLACK_SIGNING_SECRET not set; request signatures unchecked"
        )

    return _create_api_app(
        AppDependencies(
            assistant=assistant, signing_secret=credentials.slack_signing_secret
        )
    )


def main() -> None:
    """Start the Huddle assistant server using Granian.

    Reads ``HUDDLE_HOST``, ``HUDDLE_PORT``, and ``HUDDLE_LOG_LEVEL`` from
    the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("HUDDLE_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("HUDDLE_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("HUDDLE_LOG_LEVEL", "INFO")

    # Configure logging - validate log level and warn on invalid values
    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid HUDDLE_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Huddle runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "huddle.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()

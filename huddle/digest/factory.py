"""Assemble a :class:`DigestService` from settings and credentials.

Usage
-----
Run the activity digest once::

    from huddle.digest.factory import open_digest_service

    async with open_digest_service(settings, credentials, ACTIVITY_PROFILE) as svc:
        result = await svc.run(hours=settings.lookback_hours)

"""

from __future__ import annotations

import contextlib
import typing as typ

from huddle.common.time import utcnow
from huddle.context.builder import read_context
from huddle.delivery.webhook import WebhookDelivery
from huddle.generation.factory import create_formatter, create_structurer
from huddle.logging import get_logger, log_info
from huddle.summary.pipeline import SummaryPipeline

from .observability import DigestEventLogger
from .service import DigestService, DigestServiceDependencies

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from huddle.config import Credentials, Settings

    from .profiles import RunProfile

__all__ = ["open_digest_service"]

logger = get_logger(__name__)


class _Closeable(typ.Protocol):
    async def aclose(self) -> None: ...


@contextlib.asynccontextmanager
async def open_digest_service(
    settings: Settings,
    credentials: Credentials,
    profile: RunProfile,
) -> cabc.AsyncIterator[DigestService]:
    """Yield a configured service and close its HTTP clients afterwards.

    Parameters
    ----------
    settings
        Parsed settings file.
    credentials
        Secrets read from the environment.
    profile
        Profile selecting sources, prompts and the webhook.

    Raises
    ------
    GenerationConfigError
        If the structuring backend is misconfigured.
    SourceConfigError
        If a source the profile requires is not configured.

    """
    formatter = create_formatter(
        settings.generation.command, timeout_s=settings.generation.timeout_s
    )
    structurer = create_structurer(
        api_key=credentials.openrouter_api_key,
        default_max_tokens=profile.structuring_max_tokens(settings),
    )
    if structurer is None:
        log_info(logger, "Structuring backend not configured; formatting raw data")

    resources: list[_Closeable] = []
    if structurer is not None:
        resources.append(structurer)
    try:
        connectors = profile.build_connectors(settings, credentials)
        resources.extend(connectors)

        webhook_url = profile.webhook_url(settings)
        delivery = WebhookDelivery(webhook_url) if webhook_url else None
        if delivery is not None:
            resources.append(delivery)

        service = DigestService(
            DigestServiceDependencies(
                connectors=connectors,
                pipeline=SummaryPipeline(
                    formatter, structurer, timeout_s=settings.generation.timeout_s
                ),
                delivery=delivery,
            ),
            profile=profile,
            prompt_context=profile.prompt_context(
                settings,
                today=utcnow().date(),
                project_context=read_context(settings.context_path),
            ),
            author_map=profile.author_map(settings),
            event_logger=DigestEventLogger(),
        )
        yield service
    finally:
        for resource in resources:
            await resource.aclose()

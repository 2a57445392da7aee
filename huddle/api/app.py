"""Application factory for the Huddle Falcon ASGI application.

Usage
-----
Create a health-only app::

    app = create_app()

Create the assistant app::

    from huddle.api.app import AppDependencies, create_app

    app = create_app(AppDependencies(assistant=assistant, signing_secret=secret))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from huddle.api.errors import (
    InvalidInputError,
    InvalidSignatureError,
    handle_invalid_input,
    handle_invalid_signature,
)
from huddle.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from huddle.assistant.service import AssistantService

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    assistant
        Service answering mentions. Without it only health endpoints are
        registered.
    signing_secret
        Slack signing secret; blank disables signature verification.
    warm_cache
        Populate the assistant cache on startup.

    """

    assistant: AssistantService | None = None
    signing_secret: str = ""
    warm_cache: bool = True


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or without an
        assistant, only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    assistant = dependencies.assistant if dependencies is not None else None
    middleware: list[object] = []

    if assistant is not None and dependencies is not None and dependencies.warm_cache:
        from huddle.api.middleware import CacheWarmUpMiddleware

        middleware.append(CacheWarmUpMiddleware(assistant))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready", ReadyResource(assistant.cache if assistant is not None else None)
    )

    if assistant is not None and dependencies is not None:
        from huddle.api.slack.resources import SlackEventsResource
        from huddle.api.slack.signature import SignatureVerifier

        verifier = (
            SignatureVerifier(dependencies.signing_secret)
            if dependencies.signing_secret
            else None
        )
        app.add_route("/slack/events", SlackEventsResource(assistant, verifier))

    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(InvalidSignatureError, handle_invalid_signature)

    return app

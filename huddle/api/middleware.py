"""Lifespan middleware warming the assistant cache.

Usage
-----
Register the middleware when creating the Falcon app::

    app = falcon.asgi.App(middleware=[CacheWarmUpMiddleware(assistant)])

"""

from __future__ import annotations

import typing as typ

from huddle.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from huddle.assistant.service import AssistantService

__all__ = ["CacheWarmUpMiddleware"]

logger = get_logger(__name__)


class CacheWarmUpMiddleware:
    """Start populating the activity cache when the server starts.

    The population runs in the background so startup is not delayed.
    """

    def __init__(self, assistant: AssistantService) -> None:
        """Store the assistant whose cache is warmed."""
        self._assistant = assistant

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Schedule the initial cache population."""
        log_info(logger, "Warming activity cache")
        self._assistant.warm_up()

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Wait for in-flight mentions and warm-up to finish."""
        await self._assistant.drain()

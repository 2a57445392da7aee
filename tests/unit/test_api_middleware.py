"""Unit tests for the cache warm-up lifespan middleware."""

from __future__ import annotations

import asyncio
from unittest import mock

from huddle.api.middleware import CacheWarmUpMiddleware


def test_startup_warms_and_shutdown_drains() -> None:
    """Startup schedules warm-up; shutdown awaits background work."""
    assistant = mock.MagicMock()
    assistant.drain = mock.AsyncMock()
    middleware = CacheWarmUpMiddleware(assistant)

    async def _run() -> None:
        await middleware.process_startup({}, {})
        await middleware.process_shutdown({}, {})

    asyncio.run(_run())

    assistant.warm_up.assert_called_once_with()
    assistant.drain.assert_awaited_once()

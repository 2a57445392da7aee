"""Liveness and readiness resources.

``/health`` reports that the process is alive. ``/ready`` additionally
reports whether the assistant cache has been populated, but stays HTTP 200
either way because questions can still be answered by populating on
demand.

Usage
-----
Register health endpoints on the Falcon app::

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(cache))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from huddle.assistant.cache import ActivityCache

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource returning ``{"status": "ready"}``.

    Parameters
    ----------
    cache
        Optional assistant cache whose state is included in the body.

    """

    def __init__(self, cache: ActivityCache | None = None) -> None:
        """Store the cache inspected by the probe."""
        self._cache = cache

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        media: dict[str, object] = {"status": "ready"}
        if self._cache is not None:
            media["cache"] = (
                "populated"
                if self._cache.entry is not None
                else ("populating" if self._cache.is_populating else "empty")
            )
        resp.media = media
        resp.status = HTTPStatus.OK

"""In-memory cache of the latest collected activity.

The cache starts empty, is replaced wholesale by each successful
population and is otherwise read-only. At most one population runs at a
time: callers arriving while one is in flight await the same task.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from huddle.common.time import utcnow
from huddle.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from huddle.activity.models import ActivitySnapshot
    from huddle.digest.service import DigestRunResult

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class CacheEntry:
    """One complete population of the cache.

    Attributes
    ----------
    snapshot
        Aggregated activity.
    rendered
        Rendered text of :attr:`snapshot`.
    report
        Report generated from the snapshot, when formatting succeeded.
    populated_at
        When the entry was written.

    """

    snapshot: ActivitySnapshot
    rendered: str
    report: str | None
    populated_at: dt.datetime

    @classmethod
    def from_run(cls, result: DigestRunResult) -> CacheEntry | None:
        """Return an entry for a dry run, or ``None`` when nothing was collected."""
        if result.snapshot is None:
            return None
        return cls(
            snapshot=result.snapshot,
            rendered=result.rendered,
            report=result.text,
            populated_at=utcnow(),
        )


type Populator = cabc.Callable[[], cabc.Awaitable[CacheEntry | None]]


class ActivityCache:
    """Single-writer, many-reader holder of the latest :class:`CacheEntry`.

    Parameters
    ----------
    populate
        Coroutine function collecting a fresh entry. Returning ``None``
        leaves the current entry in place.

    Examples
    --------
    >>> cache = ActivityCache(populate)
    >>> cache.entry is None
    True
    >>> entry = await cache.ensure()

    """

    def __init__(self, populate: Populator) -> None:
        """Create an empty cache."""
        self._populate = populate
        self._entry: CacheEntry | None = None
        self._in_flight: asyncio.Task[CacheEntry | None] | None = None

    @property
    def entry(self) -> CacheEntry | None:
        """Return the last fully written entry without waiting."""
        return self._entry

    @property
    def is_populating(self) -> bool:
        """Return ``True`` while a population task is outstanding."""
        return self._in_flight is not None

    async def ensure(self) -> CacheEntry | None:
        """Return the cached entry, populating the cache first if empty."""
        if self._entry is not None:
            return self._entry
        return await self.refresh()

    async def refresh(self) -> CacheEntry | None:
        """Populate the cache, joining any population already in flight."""
        if self._in_flight is None:
            self._in_flight = asyncio.create_task(self._run_population())
        return await asyncio.shield(self._in_flight)

    async def _run_population(self) -> CacheEntry | None:
        try:
            entry = await self._populate()
        finally:
            self._in_flight = None

        if entry is None:
            log_warning(logger, "Activity collection produced nothing to cache")
            return self._entry

        self._entry = entry
        log_info(
            logger,
            "Cached %d events (report %s)",
            entry.snapshot.total,
            "available" if entry.report else "unavailable",
        )
        return entry


__all__ = ["ActivityCache", "CacheEntry", "Populator"]

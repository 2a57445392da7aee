"""Connector protocol and the result shape every connector returns."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    from huddle.activity.models import ActivityEvent, ActivityWindow

    from .errors import SourceError


@dc.dataclass(frozen=True, slots=True)
class ConnectorResult:
    """Events gathered by one connector for one window.

    A result with errors may still carry events: connectors return what
    they managed to fetch before (or around) a failure.

    Attributes
    ----------
    source
        Connector name.
    events
        Canonical events in origin order.
    errors
        Failures caught at the connector boundary.

    """

    source: str
    events: tuple[ActivityEvent, ...] = ()
    errors: tuple[SourceError, ...] = ()

    @property
    def ok(self) -> bool:
        """Return ``True`` when the fetch completed without errors."""
        return not self.errors

    @classmethod
    def failed(cls, source: str, error: SourceError) -> ConnectorResult:
        """Return an empty result recording ``error``."""
        return cls(source=source, errors=(error,))


@typ.runtime_checkable
class SourceConnector(typ.Protocol):
    """Fetch canonical events for a window from one external source.

    Implementations own their pagination and record mapping, and catch
    fetch failures at their boundary: ``fetch`` reports failures through
    :attr:`ConnectorResult.errors` instead of raising.
    """

    name: str

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        """Return the events this source produced inside ``window``."""
        ...

    async def aclose(self) -> None:
        """Release any owned HTTP resources."""
        ...


__all__ = ["ConnectorResult", "SourceConnector"]

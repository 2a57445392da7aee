"""Deterministic fakes for connectors, delivery and chat replies."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from huddle.connectors.protocol import ConnectorResult
from huddle.delivery.slack import WORKING_REACTION

if typ.TYPE_CHECKING:
    from huddle.activity.models import ActivityEvent, ActivityWindow
    from huddle.connectors.errors import SourceError
    from huddle.delivery.errors import DeliveryError


class FakeConnector:
    """Connector returning canned events or a canned failure."""

    def __init__(
        self,
        name: str,
        events: typ.Iterable[ActivityEvent] = (),
        *,
        error: SourceError | None = None,
    ) -> None:
        self.name = name
        self._events = tuple(events)
        self._error = error
        self.windows: list[ActivityWindow] = []
        self.closed = False

    @property
    def events(self) -> tuple[ActivityEvent, ...]:
        """Return the canned events."""
        return self._events

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        self.windows.append(window)
        if self._error is not None:
            return ConnectorResult(
                source=self.name, events=self._events, errors=(self._error,)
            )
        return ConnectorResult(source=self.name, events=self._events)

    async def aclose(self) -> None:
        self.closed = True


class RaisingConnector(FakeConnector):
    """Connector whose ``fetch`` raises instead of reporting the error."""

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        self.windows.append(window)
        assert self._error is not None, "RaisingConnector needs an error"
        raise self._error


@dc.dataclass(slots=True)
class FakeDeliverer:
    """Records delivered texts; raises ``error`` when set."""

    error: DeliveryError | None = None
    delivered: list[str] = dc.field(default_factory=list)

    async def deliver(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.delivered.append(text)


@dc.dataclass(slots=True)
class FakeReplier:
    """Records replies and reactions in call order."""

    calls: list[tuple[str, str, str, str]] = dc.field(default_factory=list)

    async def reply(self, channel: str, thread_ts: str, text: str) -> None:
        self.calls.append(("reply", channel, thread_ts, text))

    async def add_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        self.calls.append(("add_reaction", channel, timestamp, name))

    async def remove_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        self.calls.append(("remove_reaction", channel, timestamp, name))

    @property
    def replies(self) -> list[str]:
        """Return the texts posted as replies."""
        return [text for kind, _, _, text in self.calls if kind == "reply"]

    @property
    def actions(self) -> list[str]:
        """Return the kinds of calls made, in order."""
        return [kind for kind, *_ in self.calls]

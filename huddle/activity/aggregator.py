"""Merge connector output into one deduplicated, window-filtered snapshot.

Usage
-----
>>> from huddle.activity import ActivityWindow, aggregate
>>> window = ActivityWindow.trailing(hours=24)
>>> snapshot = aggregate([github_result.events, ticket_result.events], window)
>>> snapshot.counts()[EventKind.COMMIT]
3

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from huddle.logging import get_logger, log_debug

from .models import (
    SNAPSHOT_FIELDS,
    ActivityEvent,
    ActivitySnapshot,
    ActivityWindow,
    Comment,
    Commit,
    EventKind,
    PullRequest,
    Ticket,
    event_kind,
)

logger = get_logger(__name__)

type DedupKey = cabc.Hashable
type DedupKeyFn = cabc.Callable[[ActivityEvent], DedupKey]


def commit_key(event: ActivityEvent) -> DedupKey:
    """Key commits by SHA so shared history across branches collapses."""
    return typ.cast("Commit", event).sha


def comment_key(event: ActivityEvent) -> DedupKey:
    """Key comments by container, author, target and creation time."""
    comment = typ.cast("Comment", event)
    return (
        comment.container,
        comment.actor,
        comment.target_number,
        comment.occurred_at,
    )


@dc.dataclass(frozen=True, slots=True)
class DedupPolicy:
    """Per-kind deduplication keys; kinds without a key are kept as listed.

    Attributes
    ----------
    keys
        Mapping from event kind to the function computing its identity.

    """

    keys: cabc.Mapping[EventKind, DedupKeyFn] = dc.field(default_factory=dict)

    def key_for(self, kind: EventKind) -> DedupKeyFn | None:
        """Return the key function for ``kind``, if one is configured."""
        return self.keys.get(kind)


DEFAULT_DEDUP_POLICY: typ.Final = DedupPolicy(
    keys={
        EventKind.COMMIT: commit_key,
        EventKind.COMMENT: comment_key,
    }
)


def in_window(event: ActivityEvent, window: ActivityWindow) -> bool:
    """Return whether ``event`` belongs to ``window``.

    Pull requests count when they were created, merged or closed in the
    window. Their last-updated time is never consulted because CI and
    deployment bots bump it constantly. Tickets count when created or
    updated in the window. Every other kind uses ``occurred_at``.
    """
    match event:
        case PullRequest():
            return window.touches(event.created_at, event.merged_at, event.closed_at)
        case Ticket():
            return window.touches(
                event.created_at, event.updated_at, event.completed_at
            )
        case _:
            return window.contains(event.occurred_at)


def _group_by_kind(
    batches: cabc.Iterable[cabc.Iterable[ActivityEvent]],
) -> dict[EventKind, list[ActivityEvent]]:
    grouped: dict[EventKind, list[ActivityEvent]] = {kind: [] for kind in EventKind}
    for batch in batches:
        for event in batch:
            grouped[event_kind(event)].append(event)
    return grouped


def _deduplicate(
    events: list[ActivityEvent],
    key_fn: DedupKeyFn | None,
) -> list[ActivityEvent]:
    if key_fn is None:
        return events
    seen: set[DedupKey] = set()
    unique: list[ActivityEvent] = []
    for event in events:
        key = key_fn(event)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


def aggregate(
    batches: cabc.Iterable[cabc.Iterable[ActivityEvent]],
    window: ActivityWindow,
    dedup_policy: DedupPolicy = DEFAULT_DEDUP_POLICY,
) -> ActivitySnapshot:
    """Build an :class:`ActivitySnapshot` from connector batches.

    Parameters
    ----------
    batches
        Events from each source, in a deterministic source order. Order
        within and across batches is preserved.
    window
        Window every surviving event must fall into.
    dedup_policy
        Per-kind identity keys; the first event seen for a key wins.

    Returns
    -------
    ActivitySnapshot
        Snapshot holding the surviving events per kind. It may be empty.

    """
    grouped = _group_by_kind(batches)
    fields: dict[str, tuple[ActivityEvent, ...]] = {}
    for kind, events in grouped.items():
        unique = _deduplicate(events, dedup_policy.key_for(kind))
        kept = tuple(event for event in unique if in_window(event, window))
        if len(kept) != len(events):
            log_debug(
                logger,
                "Aggregated %s: received=%d unique=%d in_window=%d",
                kind,
                len(events),
                len(unique),
                len(kept),
            )
        fields[SNAPSHOT_FIELDS[kind]] = kept

    return ActivitySnapshot(
        window_start=window.start,
        window_end=window.end,
        **fields,  # type: ignore[arg-type]
    )


__all__ = [
    "DEFAULT_DEDUP_POLICY",
    "DedupPolicy",
    "aggregate",
    "comment_key",
    "commit_key",
    "in_window",
]

"""Canonical activity events and the per-run snapshot that groups them.

Every connector maps its origin records into one of the event structs
defined here. Events are immutable ``msgspec`` structs tagged with their
kind, so a snapshot can be serialised with ``msgspec.json.encode`` for
dry-run inspection without any bespoke encoder.

Usage
-----
>>> window = ActivityWindow.trailing(hours=24)
>>> commit = Commit(
...     container="reef",
...     actor="octocat",
...     occurred_at=window.end - dt.timedelta(hours=1),
...     sha="abc123",
...     message="Fix flaky test",
...     branch="main",
...     url="https://github.com/octo/reef/commit/abc123",
... )
>>> event_kind(commit)
<EventKind.COMMIT: 'commit'>

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

import msgspec

from huddle.common.time import utcnow

UNKNOWN_ACTOR = "unknown"
UNASSIGNED = "Unassigned"


class EventKind(enum.StrEnum):
    """Kinds of activity a snapshot can hold, in rendering order."""

    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    REVIEW = "review"
    COMMENT = "comment"
    ISSUE = "issue"
    RELEASE = "release"
    BRANCH_EVENT = "branch_event"
    MEMBERSHIP_EVENT = "membership_event"
    TICKET = "ticket"
    TICKET_COMMENT = "ticket_comment"
    DOCUMENT = "document"


class ActivityEvent(msgspec.Struct, frozen=True, kw_only=True, tag_field="kind"):
    """Attributes shared by every event kind.

    Attributes
    ----------
    container
        Owning repository, team or database identifier.
    actor
        Raw identity string from the origin system.
    occurred_at
        Instant the event became true, as an aware UTC datetime.

    """

    container: str
    actor: str
    occurred_at: dt.datetime


class Commit(ActivityEvent, frozen=True, kw_only=True, tag="commit"):
    """A commit reachable from at least one listed branch."""

    sha: str
    message: str
    branch: str
    url: str


class PullRequest(ActivityEvent, frozen=True, kw_only=True, tag="pull_request"):
    """A pull request touched in the window.

    ``occurred_at`` mirrors ``created_at``; inclusion also considers the
    merge and close timestamps.
    """

    number: int
    title: str
    state: str
    created_at: dt.datetime
    merged_at: dt.datetime | None = None
    closed_at: dt.datetime | None = None
    url: str = ""


class Review(ActivityEvent, frozen=True, kw_only=True, tag="review"):
    """A submitted pull request review."""

    pr_number: int
    pr_title: str
    verdict: str


class Comment(ActivityEvent, frozen=True, kw_only=True, tag="comment"):
    """A discussion or inline code-review comment."""

    target_number: str
    body: str
    is_review_comment: bool = False


class Issue(ActivityEvent, frozen=True, kw_only=True, tag="issue"):
    """An issue updated in the window; ``occurred_at`` is its update time."""

    number: int
    title: str
    state: str
    created_at: dt.datetime
    url: str = ""


class Release(ActivityEvent, frozen=True, kw_only=True, tag="release"):
    """A published release."""

    tag_name: str
    name: str
    url: str = ""


class BranchEvent(ActivityEvent, frozen=True, kw_only=True, tag="branch_event"):
    """A branch created or deleted."""

    branch: str
    action: str


class MembershipEvent(
    ActivityEvent, frozen=True, kw_only=True, tag="membership_event"
):
    """A collaborator added to or removed from a repository."""

    member: str
    action: str


class Ticket(ActivityEvent, frozen=True, kw_only=True, tag="ticket"):
    """A tracker ticket created or updated in the window.

    ``actor`` is the assignee, or :data:`UNASSIGNED` when nobody owns the
    ticket. ``occurred_at`` mirrors ``updated_at``.
    """

    identifier: str
    title: str
    status: str
    priority_label: str
    created_at: dt.datetime
    updated_at: dt.datetime
    completed_at: dt.datetime | None = None
    url: str = ""


class TicketComment(ActivityEvent, frozen=True, kw_only=True, tag="ticket_comment"):
    """A comment left on a tracker ticket."""

    ticket_identifier: str
    ticket_title: str
    body: str


class DocumentSummary(ActivityEvent, frozen=True, kw_only=True, tag="document"):
    """A document-store page edited in the window."""

    title: str
    excerpt: str
    url: str = ""


type Event = (
    Commit
    | PullRequest
    | Review
    | Comment
    | Issue
    | Release
    | BranchEvent
    | MembershipEvent
    | Ticket
    | TicketComment
    | DocumentSummary
)

_KIND_BY_TYPE: dict[type[ActivityEvent], EventKind] = {
    Commit: EventKind.COMMIT,
    PullRequest: EventKind.PULL_REQUEST,
    Review: EventKind.REVIEW,
    Comment: EventKind.COMMENT,
    Issue: EventKind.ISSUE,
    Release: EventKind.RELEASE,
    BranchEvent: EventKind.BRANCH_EVENT,
    MembershipEvent: EventKind.MEMBERSHIP_EVENT,
    Ticket: EventKind.TICKET,
    TicketComment: EventKind.TICKET_COMMENT,
    DocumentSummary: EventKind.DOCUMENT,
}


def event_kind(event: ActivityEvent) -> EventKind:
    """Return the :class:`EventKind` for ``event``.

    Raises
    ------
    TypeError
        If ``event`` is not one of the canonical event structs.

    """
    try:
        return _KIND_BY_TYPE[type(event)]
    except KeyError as exc:
        msg = f"unsupported event type: {type(event).__name__}"
        raise TypeError(msg) from exc


@dc.dataclass(frozen=True, slots=True)
class ActivityWindow:
    """Half-open time interval ``[start, end)`` shared by one run.

    Attributes
    ----------
    start
        Start of the window (inclusive), often called ``since``.
    end
        End of the window (exclusive).

    """

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        """Reject naive or inverted windows."""
        if self.start.tzinfo is None or self.end.tzinfo is None:
            msg = "window boundaries must be timezone-aware"
            raise ValueError(msg)
        if self.end <= self.start:
            msg = (
                "window end must be after window start, got "
                f"start={self.start.isoformat()}, end={self.end.isoformat()}"
            )
            raise ValueError(msg)

    @classmethod
    def trailing(
        cls,
        *,
        hours: int,
        now: dt.datetime | None = None,
    ) -> ActivityWindow:
        """Return the window covering the ``hours`` before ``now``."""
        if hours <= 0:
            msg = f"lookback hours must be positive, got {hours}"
            raise ValueError(msg)
        end = now or utcnow()
        return cls(start=end - dt.timedelta(hours=hours), end=end)

    @property
    def since(self) -> dt.datetime:
        """Alias for :attr:`start` used by connector queries."""
        return self.start

    def contains(self, moment: dt.datetime | None) -> bool:
        """Return whether ``moment`` falls inside the window."""
        if moment is None:
            return False
        return self.start <= moment < self.end

    def touches(self, *moments: dt.datetime | None) -> bool:
        """Return whether any of ``moments`` falls inside the window."""
        return any(self.contains(moment) for moment in moments)


class ActivitySnapshot(msgspec.Struct, frozen=True, kw_only=True):
    """Deduplicated, window-filtered activity for one run.

    Each attribute holds the surviving events of one kind in a stable
    order. Snapshots are built by :func:`huddle.activity.aggregate` and are
    never mutated afterwards.
    """

    window_start: dt.datetime
    window_end: dt.datetime
    commits: tuple[Commit, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()
    reviews: tuple[Review, ...] = ()
    comments: tuple[Comment, ...] = ()
    issues: tuple[Issue, ...] = ()
    releases: tuple[Release, ...] = ()
    branch_events: tuple[BranchEvent, ...] = ()
    membership_events: tuple[MembershipEvent, ...] = ()
    tickets: tuple[Ticket, ...] = ()
    ticket_comments: tuple[TicketComment, ...] = ()
    documents: tuple[DocumentSummary, ...] = ()

    @classmethod
    def empty(cls, window: ActivityWindow) -> ActivitySnapshot:
        """Return a snapshot holding no events for ``window``."""
        return cls(window_start=window.start, window_end=window.end)

    @property
    def window(self) -> ActivityWindow:
        """Return the window this snapshot was filtered against."""
        return ActivityWindow(start=self.window_start, end=self.window_end)

    def events_of(self, kind: EventKind) -> tuple[ActivityEvent, ...]:
        """Return the events stored for ``kind``."""
        return getattr(self, SNAPSHOT_FIELDS[kind])

    def counts(self) -> dict[EventKind, int]:
        """Return the number of events held per kind."""
        return {kind: len(self.events_of(kind)) for kind in EventKind}

    @property
    def total(self) -> int:
        """Return the total number of events across all kinds."""
        return sum(self.counts().values())

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the run found no activity at all."""
        return self.total == 0


SNAPSHOT_FIELDS: typ.Final[dict[EventKind, str]] = {
    EventKind.COMMIT: "commits",
    EventKind.PULL_REQUEST: "pull_requests",
    EventKind.REVIEW: "reviews",
    EventKind.COMMENT: "comments",
    EventKind.ISSUE: "issues",
    EventKind.RELEASE: "releases",
    EventKind.BRANCH_EVENT: "branch_events",
    EventKind.MEMBERSHIP_EVENT: "membership_events",
    EventKind.TICKET: "tickets",
    EventKind.TICKET_COMMENT: "ticket_comments",
    EventKind.DOCUMENT: "documents",
}


__all__ = [
    "SNAPSHOT_FIELDS",
    "UNASSIGNED",
    "UNKNOWN_ACTOR",
    "ActivityEvent",
    "ActivitySnapshot",
    "ActivityWindow",
    "BranchEvent",
    "Comment",
    "Commit",
    "DocumentSummary",
    "Event",
    "EventKind",
    "Issue",
    "MembershipEvent",
    "PullRequest",
    "Release",
    "Review",
    "Ticket",
    "TicketComment",
    "event_kind",
]

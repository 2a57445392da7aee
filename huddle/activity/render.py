"""Plain-text rendering of an activity snapshot.

The renderer produces the flat, labelled text handed to the summarisation
pipeline. It is pure: identical snapshots and author maps always render
identically, and display names are resolved here rather than during
collection so one snapshot can be rendered under different maps.

Usage
-----
>>> from huddle.activity.render import render
>>> text = render(snapshot, AuthorMap({"octocat": "Mona"}))
>>> text.splitlines()[0]
'COMMITS:'

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from huddle.common.time import short_date

from .authors import EMPTY_AUTHOR_MAP, AuthorMap
from .models import (
    ActivityEvent,
    ActivitySnapshot,
    ActivityWindow,
    BranchEvent,
    Comment,
    Commit,
    DocumentSummary,
    EventKind,
    Issue,
    MembershipEvent,
    PullRequest,
    Release,
    Review,
    Ticket,
    TicketComment,
)

type _LineFn = cabc.Callable[[typ.Any, AuthorMap, ActivityWindow], str]

SECTION_LABELS: typ.Final[dict[EventKind, str]] = {
    EventKind.COMMIT: "COMMITS:",
    EventKind.PULL_REQUEST: "PULL REQUESTS:",
    EventKind.REVIEW: "PR REVIEWS:",
    EventKind.COMMENT: "COMMENTS:",
    EventKind.ISSUE: "ISSUES:",
    EventKind.RELEASE: "RELEASES:",
    EventKind.BRANCH_EVENT: "BRANCH EVENTS:",
    EventKind.MEMBERSHIP_EVENT: "MEMBERSHIP CHANGES:",
    EventKind.TICKET: "TICKETS:",
    EventKind.TICKET_COMMENT: "TICKET COMMENTS:",
    EventKind.DOCUMENT: "DOCUMENTS:",
}


def _commit_line(event: Commit, authors: AuthorMap, _window: ActivityWindow) -> str:
    return (
        f"[{event.container}] {authors(event.actor)} ({event.branch}): "
        f"{event.message} | {event.url}"
    )


def _pull_request_status(event: PullRequest) -> str:
    if event.merged_at is not None:
        return f"MERGED {short_date(event.merged_at)}"
    if event.closed_at is not None:
        return f"CLOSED {short_date(event.closed_at)}"
    return event.state.upper()


def _pull_request_line(
    event: PullRequest, authors: AuthorMap, _window: ActivityWindow
) -> str:
    return (
        f"[{event.container}] [{_pull_request_status(event)}] #{event.number} "
        f"{event.title} by {authors(event.actor)} | "
        f"created:{short_date(event.created_at)} | {event.url}"
    )


def _review_line(event: Review, authors: AuthorMap, _window: ActivityWindow) -> str:
    return (
        f"[{event.container}] PR #{event.pr_number}: "
        f"{authors(event.actor)} → {event.verdict}"
    )


def _comment_line(event: Comment, authors: AuthorMap, _window: ActivityWindow) -> str:
    verb = "code review on" if event.is_review_comment else "commented on"
    return (
        f"[{event.container}] {authors(event.actor)} {verb} "
        f"#{event.target_number}: {event.body}"
    )


def _issue_line(event: Issue, authors: AuthorMap, _window: ActivityWindow) -> str:
    return (
        f"[{event.container}] [{event.state}] #{event.number} {event.title} "
        f"by {authors(event.actor)} | {event.url}"
    )


def _release_line(event: Release, authors: AuthorMap, _window: ActivityWindow) -> str:
    return (
        f'[{event.container}] {event.tag_name} "{event.name}" '
        f"by {authors(event.actor)} | {short_date(event.occurred_at)} | {event.url}"
    )


def _branch_line(
    event: BranchEvent, authors: AuthorMap, _window: ActivityWindow
) -> str:
    return (
        f"[{event.container}] {authors(event.actor)} {event.action} "
        f"branch: {event.branch}"
    )


def _membership_line(
    event: MembershipEvent, authors: AuthorMap, _window: ActivityWindow
) -> str:
    return (
        f"[{event.container}] {authors(event.member)} was {event.action} "
        f"by {authors(event.actor)}"
    )


def _ticket_line(event: Ticket, authors: AuthorMap, window: ActivityWindow) -> str:
    freshness = "new" if window.contains(event.created_at) else "updated"
    line = (
        f"[{freshness}] {event.identifier}: {event.title} — {event.status} — "
        f"{authors(event.actor)} [{event.priority_label}]"
    )
    if event.url:
        line = f"{line} | {event.url}"
    return line


def _ticket_comment_line(
    event: TicketComment, authors: AuthorMap, _window: ActivityWindow
) -> str:
    return f"[{event.ticket_identifier}] {authors(event.actor)}: {event.body}"


def _document_line(
    event: DocumentSummary, authors: AuthorMap, _window: ActivityWindow
) -> str:
    header = (
        f"{event.title} edited by {authors(event.actor)} | "
        f"{short_date(event.occurred_at)}"
    )
    if event.url:
        header = f"{header} | {event.url}"
    if not event.excerpt:
        return header
    return f"{header}\n  {event.excerpt}"


_LINE_RENDERERS: dict[EventKind, _LineFn] = {
    EventKind.COMMIT: _commit_line,
    EventKind.PULL_REQUEST: _pull_request_line,
    EventKind.REVIEW: _review_line,
    EventKind.COMMENT: _comment_line,
    EventKind.ISSUE: _issue_line,
    EventKind.RELEASE: _release_line,
    EventKind.BRANCH_EVENT: _branch_line,
    EventKind.MEMBERSHIP_EVENT: _membership_line,
    EventKind.TICKET: _ticket_line,
    EventKind.TICKET_COMMENT: _ticket_comment_line,
    EventKind.DOCUMENT: _document_line,
}


def _render_section(
    kind: EventKind,
    events: tuple[ActivityEvent, ...],
    authors: AuthorMap,
    window: ActivityWindow,
) -> str:
    line_fn = _LINE_RENDERERS[kind]
    lines = [SECTION_LABELS[kind]]
    lines.extend(line_fn(event, authors, window) for event in events)
    return "\n".join(lines)


def render(snapshot: ActivitySnapshot, author_map: AuthorMap | None = None) -> str:
    """Render ``snapshot`` as labelled plain-text sections.

    Parameters
    ----------
    snapshot
        Snapshot to render.
    author_map
        Identity to display-name map applied to every actor.

    Returns
    -------
    str
        One section per non-empty kind, in :class:`EventKind` order,
        separated by blank lines. An empty snapshot renders as ``""``.

    """
    authors = author_map or EMPTY_AUTHOR_MAP
    window = snapshot.window
    sections = [
        _render_section(kind, events, authors, window)
        for kind in EventKind
        if (events := snapshot.events_of(kind))
    ]
    return "\n\n".join(sections)


def describe_counts(snapshot: ActivitySnapshot) -> str:
    """Return a one-line ``N commits, M pull requests, ...`` tally."""
    counts = snapshot.counts()
    return ", ".join(
        f"{counts[kind]} {SECTION_LABELS[kind].rstrip(':').lower()}"
        for kind in EventKind
    )


__all__ = ["SECTION_LABELS", "describe_counts", "render"]

"""Canonical activity events, aggregation and plain-text rendering."""

from __future__ import annotations

from .aggregator import DEFAULT_DEDUP_POLICY, DedupPolicy, aggregate, in_window
from .authors import EMPTY_AUTHOR_MAP, AuthorMap
from .models import (
    UNASSIGNED,
    UNKNOWN_ACTOR,
    ActivityEvent,
    ActivitySnapshot,
    ActivityWindow,
    BranchEvent,
    Comment,
    Commit,
    DocumentSummary,
    Event,
    EventKind,
    Issue,
    MembershipEvent,
    PullRequest,
    Release,
    Review,
    Ticket,
    TicketComment,
    event_kind,
)
from .render import SECTION_LABELS, describe_counts, render

__all__ = [
    "DEFAULT_DEDUP_POLICY",
    "EMPTY_AUTHOR_MAP",
    "SECTION_LABELS",
    "UNASSIGNED",
    "UNKNOWN_ACTOR",
    "ActivityEvent",
    "ActivitySnapshot",
    "ActivityWindow",
    "AuthorMap",
    "BranchEvent",
    "Comment",
    "Commit",
    "DedupPolicy",
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
    "aggregate",
    "describe_counts",
    "event_kind",
    "in_window",
    "render",
]

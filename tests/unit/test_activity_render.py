"""Unit tests for snapshot rendering."""

from __future__ import annotations

from huddle.activity.aggregator import aggregate
from huddle.activity.authors import AuthorMap
from huddle.activity.models import ActivitySnapshot
from huddle.activity.render import describe_counts, render
from tests.helpers.event_builders import (
    branch_event,
    comment,
    commit,
    document,
    membership_event,
    pull_request,
    release,
    review,
    ticket,
    ticket_comment,
    window,
)


def _snapshot() -> ActivitySnapshot:
    return aggregate(
        [
            [
                commit(sha="abc", message="Fix flaky test"),
                pull_request(number=42, merged_hours_ago=1),
                review(),
                comment(is_review_comment=True),
                release(),
                branch_event(),
                membership_event(),
            ],
            [ticket(identifier="ENG-7", assignee="Jane Doe"), ticket_comment()],
            [document()],
        ],
        window(),
    )


def test_empty_snapshot_renders_empty_string() -> None:
    """Nothing to report renders as an empty string."""
    assert render(ActivitySnapshot.empty(window())) == ""


def test_sections_follow_kind_order() -> None:
    """Sections appear in a fixed order and only when non-empty."""
    text = render(_snapshot())

    labels = [line for line in text.splitlines() if line.endswith(":")]
    assert labels == [
        "COMMITS:",
        "PULL REQUESTS:",
        "PR REVIEWS:",
        "COMMENTS:",
        "RELEASES:",
        "BRANCH EVENTS:",
        "MEMBERSHIP CHANGES:",
        "TICKETS:",
        "TICKET COMMENTS:",
        "DOCUMENTS:",
    ]
    assert "ISSUES:" not in text


def test_author_map_applies_to_every_actor() -> None:
    """Display names replace logins throughout."""
    text = render(_snapshot(), AuthorMap({"octocat": "Mona", "hubot": "Hu"}))

    assert "[reef] Mona (main): Fix flaky test" in text
    assert "PR #42: Hu → APPROVED" in text
    assert "Hu code review on #42" in text
    assert "octocat" not in text.replace("github.com/acme", "")


def test_pull_request_line_shows_merge_state() -> None:
    """Merged pull requests show the merge date."""
    text = render(_snapshot())

    assert "[MERGED 2025-03-14] #42 Add retry budget by octocat" in text


def test_ticket_line_marks_updated_tickets() -> None:
    """Tickets created before the window are marked as updated."""
    text = render(_snapshot())

    assert (
        "[updated] ENG-7: Speed up search — In Progress — Jane Doe [High]" in text
    )


def test_rendering_is_deterministic() -> None:
    """Identical inputs render identically."""
    authors = AuthorMap({"octocat": "Mona"})

    assert render(_snapshot(), authors) == render(_snapshot(), authors)


def test_describe_counts_lists_every_kind() -> None:
    """The tally names every kind with its count."""
    tally = describe_counts(_snapshot())

    assert tally.startswith("1 commits, 1 pull requests, 1 pr reviews")
    assert "0 issues" in tally
    assert tally.endswith("1 documents")

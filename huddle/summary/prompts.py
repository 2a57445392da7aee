"""Prompt builders for the structuring, formatting and question stages.

Each run profile owns a :class:`PromptSet`. The formatting prompt labels its
input block as organised or raw data depending on whether the structuring
stage produced output, so the path a run took can be read off the prompt.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from huddle.activity.authors import EMPTY_AUTHOR_MAP, AuthorMap

if typ.TYPE_CHECKING:
    import datetime as dt

DEFAULT_TICKET_WORKSPACE = "your-org"
NO_SUMMARY_PLACEHOLDER = "(no summary available yet)"
NO_DATA_PLACEHOLDER = "(no data available yet)"
_AUTHOR_LINE_SEPARATOR = "\n  "


def today_label(day: dt.date) -> str:
    """Return ``day`` as ``Weekday, Month D`` (``Monday, October 19``)."""
    return f"{day:%A}, {day:%B} {day.day}"


@dc.dataclass(frozen=True, slots=True)
class PromptContext:
    """Static context shared by every prompt of a run.

    Attributes
    ----------
    today
        Date printed in the report header.
    project_context
        Contents of the project context file, or an empty string.
    author_map
        Code-host identity mapping.
    ticket_author_map
        Ticket-tracker identity mapping.
    ticket_pattern
        Human description of ticket identifiers, e.g. ``ENG-123``.
    ticket_workspace
        Ticket-tracker workspace slug used to build ticket links.

    """

    today: dt.date
    project_context: str = ""
    author_map: AuthorMap = EMPTY_AUTHOR_MAP
    ticket_author_map: AuthorMap = EMPTY_AUTHOR_MAP
    ticket_pattern: str = ""
    ticket_workspace: str = DEFAULT_TICKET_WORKSPACE

    @property
    def today_text(self) -> str:
        """Return the formatted report date."""
        return today_label(self.today)


class PromptSet(typ.Protocol):
    """Prompt builders for one run profile."""

    @property
    def organized_label(self) -> str:
        """Block label used when the structuring stage succeeded."""
        ...

    @property
    def raw_label(self) -> str:
        """Block label used when the rendered text is formatted directly."""
        ...

    def structuring(self, rendered: str, context: PromptContext) -> str:
        """Return the structuring-stage prompt for ``rendered``."""
        ...

    def formatting(
        self, data: str, context: PromptContext, *, structured: bool
    ) -> str:
        """Return the formatting-stage prompt for ``data``."""
        ...


def _data_label(prompts: PromptSet, *, structured: bool) -> str:
    return prompts.organized_label if structured else prompts.raw_label


class ActivityPrompts:
    """Prompts for the daily code-activity digest."""

    organized_label = "ORGANIZED ACTIVITY DATA"
    raw_label = "RAW ACTIVITY DATA"

    def structuring(self, rendered: str, context: PromptContext) -> str:
        """Ask for a per-person reorganisation of the rendered activity."""
        if context.ticket_pattern:
            ticket_note = (
                f"Ticket references ({context.ticket_pattern} patterns from "
                "commit messages or PR titles)"
            )
        else:
            ticket_note = "Any ticket references from commit messages or PR titles"

        return f"""You are a data organizer. Process this raw GitHub activity data into a structured summary grouped by person.

Author mapping: {context.author_map.describe()}

{rendered}

TASK: Organize ALL activity by person (use display names from mapping). For each person, list:

1. COMMITS: repos worked on with commit count and key themes (1 short sentence per repo). Include branch name and one representative commit URL per repo.
2. PRs: opened, merged, closed, or reviewed. Include PR number, title, state, and URL.
3. REVIEWS: which PRs they reviewed and the verdict (approved, changes requested, commented).
4. COMMENTS: what they commented on (issue/PR number and brief topic).
5. ISSUES: issues they opened or closed.
6. RELEASES: any releases they published.
7. BRANCHES: branches they created or deleted.

Also note:
- {ticket_note}
- Dominant repo if one has significantly more activity
- Any membership changes
- Ticket activity and recently edited documents, if present, with their identifiers

Preserve every identifier, URL and discussion excerpt. Reorganize, do not re-author.

Output ONLY the structured data — no commentary, no formatting instructions. Keep it concise but complete. Use plain text, not markdown."""  # noqa: E501

    def formatting(
        self, data: str, context: PromptContext, *, structured: bool
    ) -> str:
        """Ask for the Slack-formatted daily summary."""
        source = "pre-organized" if structured else "raw"
        context_block = (
            f"\nPROJECT CONTEXT:\n{context.project_context}\n"
            if context.project_context
            else ""
        )
        ticket_rule = (
            f"\n- Add *Tickets mentioned:* if any {context.ticket_pattern} "
            "patterns appear"
            if context.ticket_pattern
            else ""
        )
        today = context.today_text

        return f"""You are a dev activity summarizer. Generate a Slack daily summary from this {source} data.
{context_block}
Date: {today}

{_data_label(self, structured=structured)}:
{data}

FORMAT RULES:
- Use Slack mrkdwn (*bold*, _italic_, `code`)
- For links use Slack format: <URL|display text>
- Start with: *Daily Dev Summary — {today}*
- Group by person — under each person, show a short bullet list of all their activity (commits, PRs, reviews, comments, issues, releases, branches)
- For commits: summarize into one bullet per repo with commit count in parentheses. Include branch name as a clickable compare link (<https://github.com/ORG/REPO/compare/main...BRANCH|branch>)
- If most commits are in one dominant repo, note it once at top (_Most activity in <repo_url|repo>_) and only label bullets for other repos
- For PRs: show state (opened, merged, closed). Link PR number: <pr_url|repo #number>. Split into *New PRs* vs *Open PRs* if both exist, otherwise just *PRs:*
- For reviews: mention what they reviewed and the verdict (approved, changes requested)
- For comments: briefly note what they commented on (don't quote full comments)
- For issues: show opened/closed status
- For releases: show tag and release name
- For branches: mention created/deleted
- For membership changes: note who was added/removed{ticket_rule}
- End with a *Notable:* line — one sentence on the main theme of the day
- Omit sections that would be empty
- Output ONLY the Slack message — no code blocks, no explanation, no prefix/suffix"""  # noqa: E501


class TicketPrompts:
    """Prompts for the ticket-tracker digest."""

    organized_label = "ORGANIZED LINEAR DATA"
    raw_label = "RAW LINEAR DATA"

    def structuring(self, rendered: str, context: PromptContext) -> str:
        """Ask for a per-ticket reorganisation of ticket activity."""
        return f"""You are a data organizer. Process this raw Linear ticket activity data into a structured summary.

Author mapping: {context.ticket_author_map.describe()}

{rendered}

TASK: Organize this data into a concise structured format grouped by ticket:
1. For each ticket: identifier, title, assignee (use display names from mapping), current status.
2. If the ticket has comments/discussions, summarize the key points or decisions in 1-2 sentences. This is the most valuable part — discussions are easy to miss in Linear.
3. Quote specific decisions or action items from comments if present.
4. Separate new tickets (just created) from updated existing tickets.
5. Note any status changes (e.g. moved from Todo to In Progress).
6. Identify main themes or patterns across all ticket activity.

Output ONLY the structured data — no commentary, no formatting instructions. Keep it concise but preserve discussion details. Use plain text, not markdown."""  # noqa: E501

    def formatting(
        self, data: str, context: PromptContext, *, structured: bool
    ) -> str:
        """Ask for the Slack-formatted ticket summary."""
        source = "pre-organized" if structured else "raw"
        today = context.today_text
        workspace = context.ticket_workspace

        return f"""You are a Linear ticket activity summarizer. Generate a concise Slack summary from this {source} Linear data.

Date: {today}

{_data_label(self, structured=structured)}:
{data}

FORMAT RULES:
- Use Slack mrkdwn (*bold*, _italic_, `code`)
- For links use Slack format: <URL|display text>
- Start with: *Linear Activity — {today}*
- Group by ticket (not by person — Linear is ticket-centric)
- For each ticket line, format as: <linear_url|IDENTIFIER> — Title — *Assignee* `Status`
  - Assignee must be *bold* so it's immediately visible
  - Status must be in `inline code` (e.g. `Todo`, `In Progress`, `Done`) so it stands out visually
- Link ticket identifiers to Linear: <https://linear.app/{workspace}/issue/IDENTIFIER|IDENTIFIER>
- Emphasize *comments and discussions* — these are the most valuable part (easy to miss in Linear)
- Quote key discussion points or decisions from comments (keep brief)
- Add a *Highlights:* section at the end — 1-2 sentences on the main themes or important discussions
- Omit sections that would be empty
- Output ONLY the Slack message — no code blocks, no explanation, no prefix/suffix"""  # noqa: E501


def question_prompt(
    question: str,
    *,
    rendered: str,
    last_report: str | None,
    context: PromptContext,
) -> str:
    """Return the prompt answering ``question`` from cached activity.

    Parameters
    ----------
    question
        The user's question with mention tokens removed.
    rendered
        Rendered text of the cached snapshot; may be empty.
    last_report
        Most recent scheduled report, when one exists.
    context
        Static prompt context.

    """
    git_authors = "  " + context.author_map.describe(_AUTHOR_LINE_SEPARATOR)
    ticket_map = (
        "\nLinear author mapping:\n  "
        f"{context.ticket_author_map.describe(_AUTHOR_LINE_SEPARATOR)}\n"
        if len(context.ticket_author_map)
        else ""
    )
    ticket_rule = (
        "\n- Link Linear tickets as: "
        f"<https://linear.app/{context.ticket_workspace}/issue/IDENTIFIER|IDENTIFIER>"
        if "TICKETS:" in rendered
        else ""
    )

    return f"""You are a dev team assistant in a Slack channel. Answer the following question about the team's recent development activity.

PROJECT CONTEXT:
{context.project_context}

GitHub author mapping:
{git_authors}
{ticket_map}
LAST DAILY SUMMARY:
{last_report or NO_SUMMARY_PLACEHOLDER}

RAW ACTIVITY DATA:
{rendered or NO_DATA_PLACEHOLDER}

USER QUESTION: {question}

RULES:
- Answer concisely using Slack mrkdwn formatting
- Use display names (not GitHub usernames) when referring to team members
- You have both GitHub (commits, PRs) and Linear (tickets, comments) data — use whichever is relevant{ticket_rule}
- If you don't have enough data to answer, say so
- Do NOT wrap output in code blocks"""  # noqa: E501


ACTIVITY_PROMPTS: typ.Final = ActivityPrompts()
TICKET_PROMPTS: typ.Final = TicketPrompts()


__all__ = [
    "ACTIVITY_PROMPTS",
    "TICKET_PROMPTS",
    "ActivityPrompts",
    "PromptContext",
    "PromptSet",
    "TicketPrompts",
    "question_prompt",
    "today_label",
]

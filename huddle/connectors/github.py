"""GitHub connector: organisation-wide commits, pull requests and discussion.

The connector lists every repository in the configured organisation (plus
any extra repositories), then collects each repository concurrently. Every
repository task writes into its own buffer; buffers are concatenated in
repository order once all tasks finish so the output order never depends
on scheduling.

Most listings use the REST API with ``Link`` header pagination. Pull
requests and their reviews come from a single GraphQL query ordered by
last update, which lets pagination stop once results predate the window.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import typing as typ

import httpx

from huddle.activity.models import (
    UNKNOWN_ACTOR,
    ActivityEvent,
    ActivityWindow,
    BranchEvent,
    Comment,
    Commit,
    Issue,
    MembershipEvent,
    PullRequest,
    Release,
    Review,
)
from huddle.common.time import parse_optional_timestamp, to_iso_z
from huddle.logging import get_logger, log_debug, log_info, log_warning

from ._http import as_dict, as_dict_list, get_json, nested_str, post_graphql
from .errors import SourceError, SourceResponseShapeError
from .protocol import ConnectorResult

logger = get_logger(__name__)

SOURCE_NAME = "github"
COMMENT_EXCERPT_LIMIT = 120
_PAGE_SIZE = 100

_PULL_REQUESTS_QUERY = """
query($owner: String!, $name: String!, $after: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(
      first: 50
      after: $after
      orderBy: {field: UPDATED_AT, direction: DESC}
    ) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        number
        title
        state
        url
        createdAt
        updatedAt
        mergedAt
        closedAt
        author { login }
        reviews(first: 50) {
          nodes {
            state
            submittedAt
            author { login }
          }
        }
      }
    }
  }
}
"""


@dc.dataclass(frozen=True, slots=True)
class GitHubConnectorConfig:
    """Configuration for :class:`GitHubConnector`.

    Attributes
    ----------
    token
        Personal access or app token with read access to the organisation.
    org
        Organisation whose repositories are scanned.
    extra_repos
        Additional ``owner/name`` repositories outside the organisation.
    max_concurrency
        Upper bound on repositories collected at the same time.

    """

    token: str
    org: str
    extra_repos: tuple[str, ...] = ()
    api_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    web_url: str = "https://github.com"
    timeout_s: float = 30.0
    max_concurrency: int = 4
    user_agent: str = "huddle/0.1"


@dc.dataclass(frozen=True, slots=True)
class RepositoryRef:
    """An ``owner/name`` repository reference."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        """Return the ``owner/name`` slug."""
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, slug: str) -> RepositoryRef | None:
        """Parse an ``owner/name`` slug, returning ``None`` when malformed."""
        owner, sep, name = slug.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            return None
        return cls(owner=owner, name=name)


@dc.dataclass(slots=True)
class _RepositoryBuffer:
    """Events and errors collected by one repository task."""

    events: list[ActivityEvent] = dc.field(default_factory=list)
    errors: list[SourceError] = dc.field(default_factory=list)


def _first_line(text: object, limit: int | None = None) -> str:
    if not isinstance(text, str):
        return ""
    line = text.split("\n", 1)[0].rstrip("\r")
    return line[:limit] if limit is not None else line


def _login(node: object, *keys: str) -> str:
    return nested_str(node, *keys, "login") or UNKNOWN_ACTOR


def _trailing_number(url: object) -> str:
    if isinstance(url, str):
        tail = url.rstrip("/").rsplit("/", 1)[-1]
        if tail.isdigit():
            return tail
    return "?"


def _commit_from_rest(
    repo: RepositoryRef,
    branch: str,
    item: dict[str, typ.Any],
    web_url: str,
) -> Commit | None:
    sha = item.get("sha")
    occurred_at = parse_optional_timestamp(
        nested_str(item, "commit", "committer", "date")
        or nested_str(item, "commit", "author", "date")
    )
    if not isinstance(sha, str) or not sha or occurred_at is None:
        return None
    actor = (
        nested_str(item, "author", "login")
        or nested_str(item, "commit", "author", "name")
        or UNKNOWN_ACTOR
    )
    return Commit(
        container=repo.name,
        actor=actor,
        occurred_at=occurred_at,
        sha=sha,
        message=_first_line(nested_str(item, "commit", "message")),
        branch=branch,
        url=f"{web_url}/{repo.full_name}/commit/{sha}",
    )


def _comment_from_rest(
    repo: RepositoryRef,
    item: dict[str, typ.Any],
    *,
    is_review_comment: bool,
) -> Comment | None:
    occurred_at = parse_optional_timestamp(item.get("created_at"))
    if occurred_at is None:
        return None
    url_key = "pull_request_url" if is_review_comment else "issue_url"
    return Comment(
        container=repo.name,
        actor=_login(item, "user"),
        occurred_at=occurred_at,
        target_number=_trailing_number(item.get(url_key)),
        body=_first_line(item.get("body"), COMMENT_EXCERPT_LIMIT),
        is_review_comment=is_review_comment,
    )


def _issue_from_rest(repo: RepositoryRef, item: dict[str, typ.Any]) -> Issue | None:
    if "pull_request" in item:
        return None
    number = item.get("number")
    created_at = parse_optional_timestamp(item.get("created_at"))
    if not isinstance(number, int) or created_at is None:
        return None
    updated_at = parse_optional_timestamp(item.get("updated_at")) or created_at
    return Issue(
        container=repo.name,
        actor=_login(item, "user"),
        occurred_at=updated_at,
        number=number,
        title=str(item.get("title") or ""),
        state=str(item.get("state") or "open"),
        created_at=created_at,
        url=str(item.get("html_url") or ""),
    )


def _release_from_rest(
    repo: RepositoryRef, item: dict[str, typ.Any]
) -> Release | None:
    published_at = parse_optional_timestamp(item.get("published_at"))
    tag_name = item.get("tag_name")
    if published_at is None or not isinstance(tag_name, str):
        return None
    return Release(
        container=repo.name,
        actor=_login(item, "author"),
        occurred_at=published_at,
        tag_name=tag_name,
        name=str(item.get("name") or tag_name),
        url=str(item.get("html_url") or ""),
    )


def _pull_request_from_node(
    repo: RepositoryRef, node: dict[str, typ.Any], web_url: str
) -> PullRequest | None:
    number = node.get("number")
    created_at = parse_optional_timestamp(node.get("createdAt"))
    if not isinstance(number, int) or created_at is None:
        return None
    return PullRequest(
        container=repo.name,
        actor=_login(node, "author"),
        occurred_at=created_at,
        number=number,
        title=str(node.get("title") or ""),
        state=str(node.get("state") or "OPEN"),
        created_at=created_at,
        merged_at=parse_optional_timestamp(node.get("mergedAt")),
        closed_at=parse_optional_timestamp(node.get("closedAt")),
        url=str(node.get("url") or f"{web_url}/{repo.full_name}/pull/{number}"),
    )


def _reviews_from_node(
    repo: RepositoryRef, pull_request: PullRequest, node: dict[str, typ.Any]
) -> list[Review]:
    reviews: list[Review] = []
    for review in as_dict_list(as_dict(node.get("reviews")).get("nodes")):
        state = review.get("state")
        submitted_at = parse_optional_timestamp(review.get("submittedAt"))
        if not isinstance(state, str) or state == "PENDING" or submitted_at is None:
            continue
        reviews.append(
            Review(
                container=repo.name,
                actor=_login(review, "author"),
                occurred_at=submitted_at,
                pr_number=pull_request.number,
                pr_title=pull_request.title,
                verdict=state,
            )
        )
    return reviews


def _org_event(
    org: str, item: dict[str, typ.Any]
) -> BranchEvent | MembershipEvent | None:
    occurred_at = parse_optional_timestamp(item.get("created_at"))
    if occurred_at is None:
        return None
    repo_name = (nested_str(item, "repo", "name") or "").removeprefix(f"{org}/")
    payload = as_dict(item.get("payload"))
    actor = _login(item, "actor")
    match item.get("type"):
        case "CreateEvent" | "DeleteEvent" if payload.get("ref_type") == "branch":
            action = "created" if item.get("type") == "CreateEvent" else "deleted"
            return BranchEvent(
                container=repo_name,
                actor=actor,
                occurred_at=occurred_at,
                branch=str(payload.get("ref") or ""),
                action=action,
            )
        case "MemberEvent":
            return MembershipEvent(
                container=repo_name,
                actor=actor,
                occurred_at=occurred_at,
                member=_login(payload, "member"),
                action=str(payload.get("action") or "added"),
            )
        case _:
            return None


class GitHubConnector:
    """Collect organisation activity from the GitHub REST and GraphQL APIs.

    Parameters
    ----------
    config
        Token, organisation and endpoint settings.
    http_client
        Optional preconfigured client, mainly for tests. When omitted the
        connector creates and owns one.

    """

    name = SOURCE_NAME

    def __init__(
        self,
        config: GitHubConnectorConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store configuration and create the HTTP client when needed."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": config.user_agent,
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, window: ActivityWindow) -> ConnectorResult:
        """Collect every repository's activity for ``window``.

        Repository-level failures are logged and recorded; the remaining
        repositories still contribute. Failing to list the organisation
        yields an empty result.
        """
        try:
            repositories = await self.list_repositories()
        except SourceError as exc:
            log_warning(
                logger,
                "GitHub repository listing failed for %s: %s",
                self._config.org,
                exc,
            )
            return ConnectorResult.failed(SOURCE_NAME, exc)

        log_info(logger, "Found %d repos to scan", len(repositories))
        semaphore = asyncio.Semaphore(max(1, self._config.max_concurrency))

        async def _bounded(repo: RepositoryRef) -> _RepositoryBuffer:
            async with semaphore:
                return await self._collect_repository(repo, window)

        buffers = await asyncio.gather(*(_bounded(repo) for repo in repositories))
        org_buffer = await self._collect_org_events(window)

        events: list[ActivityEvent] = []
        errors: list[SourceError] = []
        for buffer in (*buffers, org_buffer):
            events.extend(buffer.events)
            errors.extend(buffer.errors)
        return ConnectorResult(
            source=SOURCE_NAME, events=tuple(events), errors=tuple(errors)
        )

    async def list_repositories(self) -> list[RepositoryRef]:
        """Return organisation repositories followed by configured extras."""
        url = f"{self._config.api_url}/orgs/{self._config.org}/repos"
        refs: list[RepositoryRef] = []
        async for page in self._pages(url, {"per_page": _PAGE_SIZE, "type": "all"}):
            for item in page:
                ref = RepositoryRef.parse(str(item.get("full_name") or ""))
                if ref is not None:
                    refs.append(ref)

        for slug in self._config.extra_repos:
            ref = RepositoryRef.parse(slug)
            if ref is None:
                log_warning(logger, "Ignoring malformed extra repository %r", slug)
                continue
            refs.append(ref)

        unique: dict[str, RepositoryRef] = {}
        for ref in refs:
            unique.setdefault(ref.full_name.lower(), ref)
        return list(unique.values())

    async def _pages(
        self,
        url: str,
        params: dict[str, str | int] | None = None,
    ) -> cabc.AsyncIterator[list[dict[str, typ.Any]]]:
        """Yield each page of a REST listing, following ``Link: rel=next``."""
        next_url: str | None = url
        next_params = params
        while next_url is not None:
            body, response = await get_json(
                self._client, next_url, source=SOURCE_NAME, params=next_params
            )
            if not isinstance(body, list):
                raise SourceResponseShapeError.missing(SOURCE_NAME, f"{url} list body")
            yield as_dict_list(body)
            next_url = response.links.get("next", {}).get("url")
            next_params = None

    async def _collect_repository(
        self, repo: RepositoryRef, window: ActivityWindow
    ) -> _RepositoryBuffer:
        log_debug(logger, "Scanning %s", repo.full_name)
        buffer = _RepositoryBuffer()
        steps: tuple[
            tuple[str, cabc.Callable[[], cabc.Awaitable[list[ActivityEvent]]]], ...
        ] = (
            ("commits", lambda: self._commits(repo, window, buffer.errors)),
            ("pull requests", lambda: self._pull_requests(repo, window)),
            ("issue comments", lambda: self._comments(repo, window, review=False)),
            ("review comments", lambda: self._comments(repo, window, review=True)),
            ("issues", lambda: self._issues(repo, window)),
            ("releases", lambda: self._releases(repo, window)),
        )
        for label, step in steps:
            try:
                buffer.events.extend(await step())
            except SourceError as exc:
                log_warning(
                    logger,
                    "GitHub %s fetch failed for %s: %s",
                    label,
                    repo.full_name,
                    exc,
                )
                buffer.errors.append(exc)
        return buffer

    async def _commits(
        self,
        repo: RepositoryRef,
        window: ActivityWindow,
        errors: list[SourceError],
    ) -> list[ActivityEvent]:
        """Return commits from every branch; branch failures go to ``errors``."""
        base = f"{self._config.api_url}/repos/{repo.full_name}"
        branches: list[str] = []
        async for page in self._pages(f"{base}/branches", {"per_page": _PAGE_SIZE}):
            branches.extend(
                name for item in page if isinstance(name := item.get("name"), str)
            )
        if not branches:
            log_debug(logger, "No branches in %s, skipping commits", repo.full_name)
            return []

        events: list[ActivityEvent] = []
        since = to_iso_z(window.since)
        for branch in branches:
            params: dict[str, str | int] = {
                "since": since,
                "sha": branch,
                "per_page": _PAGE_SIZE,
            }
            try:
                async for page in self._pages(f"{base}/commits", params):
                    for item in page:
                        commit = _commit_from_rest(
                            repo, branch, item, self._config.web_url
                        )
                        if commit is not None:
                            events.append(commit)
            except SourceError as exc:
                log_warning(
                    logger,
                    "GitHub commits fetch failed for %s branch %s: %s",
                    repo.full_name,
                    branch,
                    exc,
                )
                errors.append(exc)
        return events

    async def _pull_requests(
        self, repo: RepositoryRef, window: ActivityWindow
    ) -> list[ActivityEvent]:
        events: list[ActivityEvent] = []
        after: str | None = None
        while True:
            data = await post_graphql(
                self._client,
                self._config.graphql_url,
                _PULL_REQUESTS_QUERY,
                {"owner": repo.owner, "name": repo.name, "after": after},
                source=SOURCE_NAME,
            )
            connection = as_dict(
                as_dict(data.get("repository")).get("pullRequests")
            )
            if not connection:
                raise SourceResponseShapeError.missing(
                    SOURCE_NAME, "repository.pullRequests"
                )

            reached_older = False
            for node in as_dict_list(connection.get("nodes")):
                updated_at = parse_optional_timestamp(node.get("updatedAt"))
                if updated_at is not None and updated_at < window.since:
                    reached_older = True
                    break
                pull_request = _pull_request_from_node(repo, node, self._config.web_url)
                if pull_request is None:
                    continue
                events.append(pull_request)
                events.extend(_reviews_from_node(repo, pull_request, node))

            page_info = as_dict(connection.get("pageInfo"))
            after = page_info.get("endCursor")
            if reached_older or not page_info.get("hasNextPage") or not after:
                return events

    async def _comments(
        self, repo: RepositoryRef, window: ActivityWindow, *, review: bool
    ) -> list[ActivityEvent]:
        kind = "pulls" if review else "issues"
        url = f"{self._config.api_url}/repos/{repo.full_name}/{kind}/comments"
        params: dict[str, str | int] = {
            "since": to_iso_z(window.since),
            "per_page": _PAGE_SIZE,
        }
        events: list[ActivityEvent] = []
        async for page in self._pages(url, params):
            for item in page:
                comment = _comment_from_rest(repo, item, is_review_comment=review)
                if comment is not None:
                    events.append(comment)
        return events

    async def _issues(
        self, repo: RepositoryRef, window: ActivityWindow
    ) -> list[ActivityEvent]:
        url = f"{self._config.api_url}/repos/{repo.full_name}/issues"
        params: dict[str, str | int] = {
            "since": to_iso_z(window.since),
            "state": "all",
            "per_page": _PAGE_SIZE,
        }
        events: list[ActivityEvent] = []
        async for page in self._pages(url, params):
            for item in page:
                issue = _issue_from_rest(repo, item)
                if issue is not None:
                    events.append(issue)
        return events

    async def _releases(
        self, repo: RepositoryRef, window: ActivityWindow
    ) -> list[ActivityEvent]:
        url = f"{self._config.api_url}/repos/{repo.full_name}/releases"
        events: list[ActivityEvent] = []
        async for page in self._pages(url, {"per_page": _PAGE_SIZE}):
            releases = [
                release
                for item in page
                if (release := _release_from_rest(repo, item)) is not None
            ]
            events.extend(releases)
            if releases and all(r.occurred_at < window.since for r in releases):
                break
        return events

    async def _collect_org_events(self, window: ActivityWindow) -> _RepositoryBuffer:
        buffer = _RepositoryBuffer()
        url = f"{self._config.api_url}/orgs/{self._config.org}/events"
        try:
            async for page in self._pages(url, {"per_page": _PAGE_SIZE}):
                page_events = [
                    event
                    for item in page
                    if (event := _org_event(self._config.org, item)) is not None
                ]
                buffer.events.extend(page_events)
                oldest = [
                    stamp
                    for item in page
                    if (stamp := parse_optional_timestamp(item.get("created_at")))
                    is not None
                ]
                if oldest and min(oldest) < window.since:
                    break
        except SourceError as exc:
            log_warning(
                logger,
                "GitHub org events fetch failed for %s: %s",
                self._config.org,
                exc,
            )
            buffer.errors.append(exc)
        return buffer


__all__ = [
    "COMMENT_EXCERPT_LIMIT",
    "SOURCE_NAME",
    "GitHubConnector",
    "GitHubConnectorConfig",
    "RepositoryRef",
]

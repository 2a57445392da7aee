"""Digest service orchestrating one scheduled run.

A run computes its window, queries every connector concurrently, aggregates
and renders the activity, runs the summarisation pipeline, and finally
delivers the report unless it is a dry run.

Usage
-----
>>> from huddle.digest import (
...     ACTIVITY_PROFILE,
...     DigestService,
...     DigestServiceDependencies,
... )
>>> dependencies = DigestServiceDependencies(
...     connectors=connectors,
...     pipeline=SummaryPipeline(CommandTextGenerator()),
...     delivery=WebhookDelivery(webhook_url),
... )
>>> service = DigestService(
...     dependencies, profile=ACTIVITY_PROFILE, prompt_context=context
... )
>>> result = await service.run(hours=24)
>>> result.exit_code
0

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import enum
import time
import typing as typ

from huddle.activity.aggregator import DEFAULT_DEDUP_POLICY, aggregate
from huddle.activity.authors import EMPTY_AUTHOR_MAP
from huddle.activity.models import ActivityWindow
from huddle.activity.render import describe_counts, render
from huddle.common.time import utcnow
from huddle.connectors.errors import SourceError
from huddle.connectors.protocol import ConnectorResult
from huddle.delivery.errors import DeliveryError
from huddle.logging import get_logger, log_info
from huddle.summary.pipeline import PipelineState

from .observability import DigestEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from huddle.activity.aggregator import DedupPolicy
    from huddle.activity.authors import AuthorMap
    from huddle.activity.models import ActivitySnapshot
    from huddle.connectors.protocol import SourceConnector
    from huddle.summary.pipeline import PipelineResult, SummaryPipeline
    from huddle.summary.prompts import PromptContext

    from .profiles import RunProfile

logger = get_logger(__name__)

DRY_RUN_FENCE = "---"


class FailureCategory(enum.StrEnum):
    """Category of a failure observed during a run."""

    SOURCE = "source"
    STRUCTURING = "structuring"
    FORMATTING = "formatting"
    DELIVERY = "delivery"
    CONFIGURATION = "configuration"


class RunOutcome(enum.StrEnum):
    """Final outcome of a digest run."""

    NO_ACTIVITY = "no_activity"
    DELIVERED = "delivered"
    DRY_RUN = "dry_run"
    NOT_DELIVERED = "not_delivered"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        """Return ``True`` for outcomes that exit with status zero."""
        return self in _SUCCESSFUL_OUTCOMES


_SUCCESSFUL_OUTCOMES = frozenset(
    {RunOutcome.NO_ACTIVITY, RunOutcome.DELIVERED, RunOutcome.DRY_RUN}
)


@dc.dataclass(frozen=True, slots=True)
class RunFailure:
    """A failure recorded during a run.

    Attributes
    ----------
    category
        Which stage failed.
    message
        Human-readable description.
    fatal
        Whether this failure ended the run.
    source
        Connector name for source failures.

    """

    category: FailureCategory
    message: str
    fatal: bool
    source: str | None = None

    def describe(self) -> str:
        """Return the single line printed for this failure."""
        label = f"{self.category} ({self.source})" if self.source else self.category
        severity = "error" if self.fatal else "warning"
        return f"{severity}: {label} failure: {self.message}"


class Deliverer(typ.Protocol):
    """Output channel accepting a finished report."""

    async def deliver(self, text: str) -> None:
        """Send ``text``; raise :class:`DeliveryError` on failure."""
        ...


@dc.dataclass(frozen=True, slots=True)
class DigestServiceDependencies:
    """Core collaborators of :class:`DigestService`.

    Attributes
    ----------
    connectors
        Sources queried for the run, in a fixed order.
    pipeline
        Structuring and formatting pipeline.
    delivery
        Output channel. May be ``None`` for dry runs.

    """

    connectors: cabc.Sequence[SourceConnector]
    pipeline: SummaryPipeline
    delivery: Deliverer | None = None


@dc.dataclass(frozen=True, slots=True)
class DigestRunResult:
    """Everything a run produced, for delivery or inspection.

    Attributes
    ----------
    profile
        Name of the run profile.
    outcome
        Final outcome.
    window
        Window the run covered.
    snapshot
        Aggregated activity, when collection got that far.
    rendered
        Rendered snapshot text.
    pipeline
        Pipeline result, when the pipeline ran.
    failures
        Every failure observed, fatal or not, in order.

    """

    profile: str
    outcome: RunOutcome
    window: ActivityWindow
    snapshot: ActivitySnapshot | None = None
    rendered: str = ""
    pipeline: PipelineResult | None = None
    failures: tuple[RunFailure, ...] = ()

    @property
    def text(self) -> str | None:
        """Return the final report text, when one was generated."""
        return self.pipeline.text if self.pipeline is not None else None

    @property
    def structured_text(self) -> str | None:
        """Return the structuring-stage output, when that stage succeeded."""
        return self.pipeline.structured_text if self.pipeline is not None else None

    @property
    def exit_code(self) -> int:
        """Return the process exit status for this outcome."""
        return 0 if self.outcome.is_success else 1

    @property
    def fatal_failure(self) -> RunFailure | None:
        """Return the failure that ended the run, if any."""
        return next((failure for failure in self.failures if failure.fatal), None)

    def format_dry_run(self) -> str:
        """Return the dry-run report: fenced text, structured data, counts."""
        parts: list[str] = []
        if self.text is not None:
            parts.extend([DRY_RUN_FENCE, self.text, DRY_RUN_FENCE])
        if self.structured_text is not None:
            parts.extend(["", "Structured data:", self.structured_text])
        if self.snapshot is not None:
            parts.extend(["", f"Raw: {describe_counts(self.snapshot)}"])
        return "\n".join(parts)


class DigestService:
    """Run one digest: collect, aggregate, render, summarise, deliver.

    Parameters
    ----------
    dependencies
        Connectors, pipeline and delivery channel.
    profile
        Profile supplying prompts and the set of mandatory sources.
    prompt_context
        Static prompt context for the run.
    author_map
        Identity map applied when rendering.
    event_logger
        Optional structured event logger.
    dedup_policy
        Identity keys used by the aggregator.

    """

    def __init__(  # noqa: PLR0913
        self,
        dependencies: DigestServiceDependencies,
        *,
        profile: RunProfile,
        prompt_context: PromptContext,
        author_map: AuthorMap = EMPTY_AUTHOR_MAP,
        event_logger: DigestEventLogger | None = None,
        dedup_policy: DedupPolicy = DEFAULT_DEDUP_POLICY,
    ) -> None:
        """Store collaborators for later runs."""
        self._connectors = tuple(dependencies.connectors)
        self._pipeline = dependencies.pipeline
        self._delivery = dependencies.delivery
        self._profile = profile
        self._prompt_context = prompt_context
        self._author_map = author_map
        self._event_logger = event_logger or DigestEventLogger()
        self._dedup_policy = dedup_policy

    async def run(
        self,
        *,
        hours: int,
        dry_run: bool = False,
        now: dt.datetime | None = None,
    ) -> DigestRunResult:
        """Execute a run over the ``hours`` before ``now``.

        Parameters
        ----------
        hours
            Lookback length of the window.
        dry_run
            Skip delivery and return the generated artefacts only.
        now
            End of the window; defaults to the current time.

        Returns
        -------
        DigestRunResult
            The run outcome and all intermediate artefacts.

        """
        started = time.monotonic()
        window = ActivityWindow.trailing(hours=hours, now=now or utcnow())
        self._event_logger.log_run_started(
            profile=self._profile.name, window=window, dry_run=dry_run
        )

        if not dry_run and self._delivery is None:
            failure = RunFailure(
                FailureCategory.CONFIGURATION,
                f"no webhook configured for the {self._profile.name} digest",
                fatal=True,
            )
            return self._finish(
                DigestRunResult(
                    profile=self._profile.name,
                    outcome=RunOutcome.FAILED,
                    window=window,
                    failures=(failure,),
                ),
                started,
            )

        results = await asyncio.gather(
            *(self._fetch(connector, window) for connector in self._connectors)
        )
        failures = self._source_failures(results)
        if any(failure.fatal for failure in failures):
            return self._finish(
                DigestRunResult(
                    profile=self._profile.name,
                    outcome=RunOutcome.FAILED,
                    window=window,
                    failures=tuple(failures),
                ),
                started,
            )

        snapshot = aggregate(
            (result.events for result in results), window, self._dedup_policy
        )
        if snapshot.is_empty:
            log_info(logger, "No activity found. Skipping summary.")
            return self._finish(
                DigestRunResult(
                    profile=self._profile.name,
                    outcome=RunOutcome.NO_ACTIVITY,
                    window=window,
                    snapshot=snapshot,
                    failures=tuple(failures),
                ),
                started,
            )

        rendered = render(snapshot, self._author_map)
        pipeline_result = await self._pipeline.run(
            rendered, prompts=self._profile.prompts, context=self._prompt_context
        )
        failures.extend(self._pipeline_failures(pipeline_result))

        outcome = await self._conclude(pipeline_result, failures, dry_run=dry_run)
        return self._finish(
            DigestRunResult(
                profile=self._profile.name,
                outcome=outcome,
                window=window,
                snapshot=snapshot,
                rendered=rendered,
                pipeline=pipeline_result,
                failures=tuple(failures),
            ),
            started,
        )

    async def _fetch(
        self, connector: SourceConnector, window: ActivityWindow
    ) -> ConnectorResult:
        try:
            return await connector.fetch(window)
        except SourceError as exc:
            return ConnectorResult.failed(connector.name, exc)

    def _source_failures(
        self, results: cabc.Sequence[ConnectorResult]
    ) -> list[RunFailure]:
        failures: list[RunFailure] = []
        for result in results:
            mandatory = result.source in self._profile.mandatory_sources
            for error in result.errors:
                self._event_logger.log_source_failed(
                    profile=self._profile.name,
                    source=result.source,
                    error=error,
                    mandatory=mandatory,
                )
                failures.append(
                    RunFailure(
                        FailureCategory.SOURCE,
                        str(error),
                        fatal=mandatory,
                        source=result.source,
                    )
                )
        return failures

    def _pipeline_failures(self, result: PipelineResult) -> list[RunFailure]:
        failures: list[RunFailure] = []
        if result.structuring_error is not None:
            self._event_logger.log_structuring_fallback(
                profile=self._profile.name, error=result.structuring_error
            )
            failures.append(
                RunFailure(
                    FailureCategory.STRUCTURING,
                    str(result.structuring_error),
                    fatal=False,
                )
            )
        if result.state is PipelineState.FAILED:
            failures.append(
                RunFailure(FailureCategory.FORMATTING, str(result.error), fatal=True)
            )
        return failures

    async def _conclude(
        self,
        result: PipelineResult,
        failures: list[RunFailure],
        *,
        dry_run: bool,
    ) -> RunOutcome:
        if result.state is PipelineState.FAILED or result.text is None:
            return RunOutcome.FAILED
        if dry_run:
            return RunOutcome.DRY_RUN
        if self._delivery is None:
            return RunOutcome.NOT_DELIVERED

        try:
            await self._delivery.deliver(result.text)
        except DeliveryError as exc:
            failures.append(RunFailure(FailureCategory.DELIVERY, str(exc), fatal=True))
            return RunOutcome.NOT_DELIVERED
        return RunOutcome.DELIVERED

    def _finish(self, result: DigestRunResult, started: float) -> DigestRunResult:
        duration = dt.timedelta(seconds=time.monotonic() - started)
        failure = result.fatal_failure
        if failure is not None:
            self._event_logger.log_run_failed(
                profile=result.profile,
                outcome=result.outcome,
                category=failure.category,
                message=failure.message,
                duration=duration,
            )
        else:
            self._event_logger.log_run_completed(
                profile=result.profile,
                outcome=result.outcome,
                total_events=result.snapshot.total if result.snapshot else 0,
                duration=duration,
            )
        return result


__all__ = [
    "DRY_RUN_FENCE",
    "Deliverer",
    "DigestRunResult",
    "DigestService",
    "DigestServiceDependencies",
    "FailureCategory",
    "RunFailure",
    "RunOutcome",
]

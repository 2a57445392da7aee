"""Emit structured observability events for digest runs.

Usage
-----
>>> event_logger = DigestEventLogger()
>>> event_logger.log_run_started(profile="activity", window=window, dry_run=True)

"""

from __future__ import annotations

import enum
import typing as typ

from huddle.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from huddle.activity.models import ActivityWindow

logger = get_logger(__name__)


class DigestEventType(enum.StrEnum):
    """Structured log event types for digest runs."""

    RUN_STARTED = "digest.run.started"
    SOURCE_FAILED = "digest.source.failed"
    STRUCTURING_FALLBACK = "digest.structuring.fallback"
    RUN_COMPLETED = "digest.run.completed"
    RUN_FAILED = "digest.run.failed"


class DigestEventLogger:
    """Emit structured digest events via femtologging."""

    def log_run_started(
        self, *, profile: str, window: ActivityWindow, dry_run: bool
    ) -> None:
        """Log the start of a run over ``window``."""
        log_info(
            logger,
            "[%s] profile=%s window_start=%s window_end=%s dry_run=%s",
            DigestEventType.RUN_STARTED,
            profile,
            window.start.isoformat(),
            window.end.isoformat(),
            dry_run,
        )

    def log_source_failed(
        self, *, profile: str, source: str, error: BaseException, mandatory: bool
    ) -> None:
        """Log a connector failure.

        Parameters
        ----------
        profile
            Run profile name.
        source
            Connector name.
        error
            Failure reported by the connector.
        mandatory
            Whether the failure ends the run.

        """
        emit = log_error if mandatory else log_warning
        emit(
            logger,
            "[%s] profile=%s source=%s mandatory=%s error_type=%s error_message=%s",
            DigestEventType.SOURCE_FAILED,
            profile,
            source,
            mandatory,
            type(error).__name__,
            str(error),
        )

    def log_structuring_fallback(
        self, *, profile: str, error: BaseException
    ) -> None:
        """Log that formatting ran on raw data after a structuring failure."""
        log_warning(
            logger,
            "[%s] profile=%s error_type=%s error_message=%s",
            DigestEventType.STRUCTURING_FALLBACK,
            profile,
            type(error).__name__,
            str(error),
        )

    def log_run_completed(
        self,
        *,
        profile: str,
        outcome: str,
        total_events: int,
        duration: dt.timedelta,
    ) -> None:
        """Log a run that finished with a non-fatal outcome."""
        log_info(
            logger,
            "[%s] profile=%s outcome=%s total_events=%d duration_seconds=%.3f",
            DigestEventType.RUN_COMPLETED,
            profile,
            outcome,
            total_events,
            duration.total_seconds(),
        )

    def log_run_failed(
        self,
        *,
        profile: str,
        outcome: str,
        category: str,
        message: str,
        duration: dt.timedelta,
    ) -> None:
        """Log a run that ended with a fatal failure.

        Parameters
        ----------
        profile
            Run profile name.
        outcome
            Final run outcome (``failed`` or ``not_delivered``).
        category
            Failure category that ended the run.
        message
            Human-readable failure description.
        duration
            Elapsed time between run start and failure.

        """
        log_error(
            logger,
            "[%s] profile=%s outcome=%s category=%s duration_seconds=%.3f "
            "error_message=%s",
            DigestEventType.RUN_FAILED,
            profile,
            outcome,
            category,
            duration.total_seconds(),
            message,
        )


__all__ = ["DigestEventLogger", "DigestEventType"]

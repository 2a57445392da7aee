"""Unit tests for digest run observability events."""

from __future__ import annotations

import datetime as dt

import pytest

from huddle.connectors.errors import SourceAPIError
from huddle.digest import observability
from huddle.digest.observability import DigestEventLogger, DigestEventType
from tests.helpers import FakeLogger
from tests.helpers.event_builders import window


@pytest.fixture
def fake_logger(monkeypatch: pytest.MonkeyPatch) -> FakeLogger:
    """Replace the module logger with a recording double."""
    logger = FakeLogger()
    monkeypatch.setattr(observability, "logger", logger)
    return logger


def test_run_started_includes_window(fake_logger: FakeLogger) -> None:
    """Start events carry the profile, window bounds and dry-run flag."""
    DigestEventLogger().log_run_started(
        profile="activity", window=window(), dry_run=True
    )

    [message] = fake_logger.messages("INFO")
    assert message.startswith(f"[{DigestEventType.RUN_STARTED}]")
    assert "window_start=2025-03-13T09:00:00+00:00" in message
    assert "dry_run=True" in message


@pytest.mark.parametrize(
    ("mandatory", "level"), [(True, "ERROR"), (False, "WARNING")]
)
def test_source_failed_level_depends_on_mandatory(
    fake_logger: FakeLogger, *, mandatory: bool, level: str
) -> None:
    """Fatal source failures log at ERROR, optional ones at WARNING."""
    DigestEventLogger().log_source_failed(
        profile="tickets",
        source="tickets",
        error=SourceAPIError.timeout("tickets"),
        mandatory=mandatory,
    )

    [message] = fake_logger.messages(level)
    assert "error_type=SourceAPIError" in message
    assert f"mandatory={mandatory}" in message


def test_structuring_fallback_is_warning(fake_logger: FakeLogger) -> None:
    """Fallback events are degraded, not fatal."""
    DigestEventLogger().log_structuring_fallback(
        profile="activity", error=TimeoutError("slow")
    )

    [message] = fake_logger.messages("WARNING")
    assert DigestEventType.STRUCTURING_FALLBACK in message
    assert "error_message=slow" in message


def test_run_completed_reports_duration(fake_logger: FakeLogger) -> None:
    """Completion events include counts and elapsed seconds."""
    DigestEventLogger().log_run_completed(
        profile="activity",
        outcome="delivered",
        total_events=7,
        duration=dt.timedelta(milliseconds=1500),
    )

    [message] = fake_logger.messages("INFO")
    assert "total_events=7" in message
    assert "duration_seconds=1.500" in message


def test_run_failed_is_error(fake_logger: FakeLogger) -> None:
    """Failed runs log the category and message at ERROR."""
    DigestEventLogger().log_run_failed(
        profile="tickets",
        outcome="failed",
        category="source",
        message="tickets API request timed out",
        duration=dt.timedelta(seconds=2),
    )

    [message] = fake_logger.messages("ERROR")
    assert DigestEventType.RUN_FAILED in message
    assert "category=source" in message
    assert message.endswith("error_message=tickets API request timed out")

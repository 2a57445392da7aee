"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import pytest

from huddle.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)
from tests.helpers import FakeLogger


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("warning", ("WARNING", False)),
        (" debug ", ("DEBUG", False)),
        ("trace", ("TRACE", False)),
        (None, ("INFO", True)),
        ("", ("INFO", True)),
        ("loud", ("INFO", True)),
    ],
)
def test_normalize_log_level(raw: str | None, expected: tuple[str, bool]) -> None:
    """Levels are upper-cased and unusable input falls back to INFO."""
    assert normalize_log_level(raw) == expected


def test_format_log_message_without_args_keeps_percent_signs() -> None:
    """Templates without arguments are returned untouched."""
    assert format_log_message("100% done") == "100% done"
    assert format_log_message("%d events from %s", 3, "github") == (
        "3 events from github"
    )


@pytest.mark.parametrize(
    ("emit", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_format_and_tag(emit: object, level: str) -> None:
    """Each helper interpolates arguments and emits its own level."""
    logger = FakeLogger()

    emit(logger, "fetched %d from %s", 2, "tickets")  # type: ignore[operator]

    assert logger.calls == [(level, "fetched 2 from tickets", None, False)]


def test_log_exception_attaches_exception() -> None:
    """The exception travels as ``exc_info`` and the message is verbatim."""
    logger = FakeLogger()
    exc = RuntimeError("boom")

    log_exception(logger, "delivery failed: 100%", exc)

    assert logger.calls == [("ERROR", "delivery failed: 100%", exc, False)]


def test_configure_logging_passes_normalized_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """basicConfig receives the normalized level and force flag."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("huddle.logging.basicConfig", fake_basic_config)

    assert configure_logging("nope", force=True) == ("INFO", True)
    assert captured == {"level": "INFO", "force": True}

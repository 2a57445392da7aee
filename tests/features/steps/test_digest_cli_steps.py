"""Behavioural coverage for digest command-line failures."""

from __future__ import annotations

import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from huddle import cli

if typ.TYPE_CHECKING:
    from pathlib import Path


class CliContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    config_path: Path
    exit_code: int
    stderr: str


@scenario(
    "../digest_cli.feature",
    "A malformed structuring budget is a configuration failure",
)
def test_malformed_structuring_budget() -> None:
    """Wrap the pytest-bdd scenario for a bad structuring budget."""


@scenario("../digest_cli.feature", "A zero lookback is rejected")
def test_zero_lookback() -> None:
    """Wrap the pytest-bdd scenario for a non-positive ``--hours``."""


@pytest.fixture
def cli_context(monkeypatch: pytest.MonkeyPatch) -> CliContext:
    """Provision an empty scenario context with logging left untouched."""
    monkeypatch.setattr(cli, "configure_logging", lambda *_a, **_k: ("INFO", False))
    return {}


@given("a settings file for the acme organisation")
def given_settings_file(cli_context: CliContext, tmp_path: Path) -> None:
    """Write a minimal settings file naming one organisation."""
    path = tmp_path / "huddle.yaml"
    path.write_text(
        f"github:\n  org: acme\ncontext_path: {tmp_path / 'context.md'}\n",
        encoding="utf-8",
    )
    cli_context["config_path"] = path


@given(parsers.parse('the environment sets "{name}" to "{value}"'))
def given_environment(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    """Export one environment variable for the run."""
    monkeypatch.setenv(name, value)


@when(parsers.parse('the digest command runs with "{args}"'))
def when_digest_runs(
    cli_context: CliContext, capsys: pytest.CaptureFixture[str], args: str
) -> None:
    """Invoke ``huddle digest`` and capture its exit status."""
    argv = ["digest", *args.split(), "--config", str(cli_context["config_path"])]
    try:
        exit_code = cli.app(argv)
    except SystemExit as exc:
        exit_code = exc.code if isinstance(exc.code, int) else 1
    cli_context["exit_code"] = exit_code if exit_code is not None else 0
    cli_context["stderr"] = capsys.readouterr().err


@then(parsers.parse("the command exits with status {code:d}"))
def then_exit_status(cli_context: CliContext, code: int) -> None:
    """Assert the process exit status."""
    assert cli_context["exit_code"] == code


@then(parsers.parse('stderr reports a configuration failure mentioning "{text}"'))
def then_configuration_failure(cli_context: CliContext, text: str) -> None:
    """Assert the one-line configuration failure message."""
    stderr = cli_context["stderr"]
    assert "error: configuration failure" in stderr
    assert text in stderr

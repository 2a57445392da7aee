"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_HUDDLE_ENV_VARS = (
    "HUDDLE_CONFIG",
    "HUDDLE_GITHUB_TOKEN",
    "HUDDLE_LINEAR_API_KEY",
    "HUDDLE_NOTION_API_KEY",
    "HUDDLE_OPENROUTER_API_KEY",
    "HUDDLE_SLACK_BOT_TOKEN",
    "HUDDLE_SLACK_SIGNING_SECRET",
    "HUDDLE_STRUCTURING_ENDPOINT",
    "HUDDLE_STRUCTURING_MODEL",
    "HUDDLE_STRUCTURING_MAX_TOKENS",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> cabc.Iterator[None]:
    """Clear ``HUDDLE_*`` variables so tests never see real credentials."""
    for name in _HUDDLE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield

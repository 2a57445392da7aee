"""Unit tests for assembling a digest service from settings."""

from __future__ import annotations

import asyncio

import pytest

from huddle.config import Credentials, Settings
from huddle.digest import ACTIVITY_PROFILE
from huddle.digest.factory import open_digest_service
from huddle.digest.profiles import RunProfile
from huddle.generation import GenerationConfigError
from tests.helpers.fakes import FakeConnector


def _record_connectors(
    monkeypatch: pytest.MonkeyPatch,
) -> list[FakeConnector]:
    built: list[FakeConnector] = []

    def _build(
        self: RunProfile, _settings: Settings, _credentials: Credentials
    ) -> list[FakeConnector]:
        connector = FakeConnector("github")
        built.append(connector)
        return [connector]

    monkeypatch.setattr(RunProfile, "build_connectors", _build)
    return built


def test_generation_config_error_precedes_connectors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A bad structuring budget fails before any HTTP client is opened."""
    built = _record_connectors(monkeypatch)
    monkeypatch.setenv("HUDDLE_STRUCTURING_MAX_TOKENS", "abc")

    async def _open() -> None:
        async with open_digest_service(
            Settings(), Credentials(openrouter_api_key="sk-test"), ACTIVITY_PROFILE
        ):
            pass

    with pytest.raises(GenerationConfigError, match="max_tokens"):
        asyncio.run(_open())
    assert built == []


def test_connectors_are_closed_after_use(monkeypatch: pytest.MonkeyPatch) -> None:
    """Leaving the context closes every connector the profile built."""
    built = _record_connectors(monkeypatch)

    async def _open() -> None:
        async with open_digest_service(Settings(), Credentials(), ACTIVITY_PROFILE):
            assert not built[0].closed

    asyncio.run(_open())

    assert built[0].closed

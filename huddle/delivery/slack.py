"""Thread replies and reactions through the Slack Web API."""

from __future__ import annotations

import typing as typ

import httpx

from huddle.logging import get_logger, log_warning

from .errors import DeliveryError

logger = get_logger(__name__)

DEFAULT_SLACK_API_URL = "https://slack.com/api"
WORKING_REACTION = "eyes"
_DEFAULT_TIMEOUT_S = 30.0


class SlackThreadReplier:
    """Post replies in a message thread and manage progress reactions.

    Parameters
    ----------
    bot_token
        Bot token with ``chat:write`` and ``reactions:write`` scopes.
    api_url
        Base URL of the Web API.
    http_client
        Optional client for testing. When omitted the replier creates and
        owns one.

    """

    def __init__(
        self,
        bot_token: str,
        *,
        api_url: str = DEFAULT_SLACK_API_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        """Store credentials and the HTTP client."""
        if not bot_token.strip():
            raise DeliveryError.missing_target("HUDDLE_SLACK_BOT_TOKEN")
        self._api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)
        self._headers = {
            "Authorization": f"Bearer {bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def reply(self, channel: str, thread_ts: str, text: str) -> None:
        """Post ``text`` as a reply in the thread rooted at ``thread_ts``.

        Raises
        ------
        DeliveryError
            If the call fails or Slack answers ``ok: false``.

        """
        await self._call(
            "chat.postMessage",
            {"channel": channel, "thread_ts": thread_ts, "text": text},
        )

    async def add_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        """Add ``name`` to a message; failures are logged and ignored."""
        await self._best_effort(
            "reactions.add", {"channel": channel, "timestamp": timestamp, "name": name}
        )

    async def remove_reaction(
        self, channel: str, timestamp: str, name: str = WORKING_REACTION
    ) -> None:
        """Remove ``name`` from a message; failures are logged and ignored."""
        await self._best_effort(
            "reactions.remove",
            {"channel": channel, "timestamp": timestamp, "name": name},
        )

    async def _best_effort(self, method: str, payload: dict[str, str]) -> None:
        try:
            await self._call(method, payload)
        except DeliveryError as exc:
            log_warning(logger, "Ignoring failed %s call: %s", method, exc)

    async def _call(self, method: str, payload: dict[str, str]) -> dict[str, typ.Any]:
        try:
            response = await self._client.post(
                f"{self._api_url}/{method}", json=payload, headers=self._headers
            )
        except httpx.HTTPError as exc:
            raise DeliveryError.network_error(f"Slack {method}", str(exc)) from exc

        if response.is_error:
            raise DeliveryError.http_error(response.status_code, f"Slack {method}")

        try:
            body = response.json()
        except ValueError as exc:
            raise DeliveryError.api_error(method, "invalid JSON response") from exc

        if not isinstance(body, dict) or not body.get("ok"):
            error = body.get("error", "unknown_error") if isinstance(body, dict) else ""
            raise DeliveryError.api_error(method, str(error or "unknown_error"))
        return typ.cast("dict[str, typ.Any]", body)


__all__ = ["DEFAULT_SLACK_API_URL", "WORKING_REACTION", "SlackThreadReplier"]

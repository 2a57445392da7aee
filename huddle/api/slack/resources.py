"""Slack Events API resource.

Slack expects an acknowledgement within three seconds, so mentions are
handed to :meth:`AssistantService.dispatch` and answered in the background.

Usage
-----
Register the endpoint on the Falcon app::

    app.add_route("/slack/events", SlackEventsResource(assistant, verifier))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from huddle.api.errors import InvalidInputError
from huddle.assistant.service import Mention
from huddle.logging import get_logger, log_debug, log_info

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from huddle.assistant.service import AssistantService

    from .signature import SignatureVerifier

__all__ = ["SlackEvent", "SlackEnvelope", "SlackEventsResource"]

logger = get_logger(__name__)

_RETRY_HEADER = "X-Slack-Retry-Num"
_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
_SIGNATURE_HEADER = "X-Slack-Signature"


class SlackEvent(msgspec.Struct, kw_only=True):
    """Inner event of an ``event_callback`` envelope."""

    type: str
    channel: str = ""
    ts: str = ""
    text: str = ""
    user: str = ""


class SlackEnvelope(msgspec.Struct, kw_only=True):
    """Outer Events API payload."""

    type: str
    challenge: str = ""
    event: SlackEvent | None = None


class SlackEventsResource:
    """Handle ``POST /slack/events``.

    Parameters
    ----------
    assistant
        Service answering mentions.
    verifier
        Signature verifier; ``None`` disables verification.

    """

    def __init__(
        self,
        assistant: AssistantService,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        """Store the assistant and optional verifier."""
        self._assistant = assistant
        self._verifier = verifier

    async def on_post(self, req: Request, resp: Response) -> None:
        """Acknowledge an Events API delivery and dispatch mentions.

        Raises
        ------
        InvalidSignatureError
            If verification is enabled and the signature does not match.
        InvalidInputError
            If the body is not a valid Events API payload.

        """
        body = await req.stream.read()
        if self._verifier is not None:
            self._verifier.verify(
                req.get_header(_TIMESTAMP_HEADER),
                req.get_header(_SIGNATURE_HEADER),
                body,
            )

        try:
            envelope = msgspec.json.decode(body, type=SlackEnvelope)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(f"invalid event payload: {exc}") from exc

        resp.status = HTTPStatus.OK
        if envelope.type == "url_verification":
            resp.media = {"challenge": envelope.challenge}
            return

        resp.media = {"ok": True}
        if req.get_header(_RETRY_HEADER) is not None:
            log_debug(logger, "Ignoring Slack retry %s", req.get_header(_RETRY_HEADER))
            return

        event = envelope.event
        if envelope.type != "event_callback" or event is None:
            return
        if event.type != "app_mention":
            log_debug(logger, "Ignoring Slack event type %s", event.type)
            return

        log_info(logger, "Mention received in %s", event.channel)
        self._assistant.dispatch(
            Mention(
                channel=event.channel, ts=event.ts, text=event.text, user=event.user
            )
        )

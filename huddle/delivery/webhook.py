"""Post a finished report to an incoming webhook."""

from __future__ import annotations

import httpx

from huddle.logging import get_logger, log_info

from .errors import DeliveryError

logger = get_logger(__name__)

_WEBHOOK_TARGET = "webhook"
_DEFAULT_TIMEOUT_S = 30.0


class WebhookDelivery:
    """Deliver text as ``{"text": ...}`` to a fixed webhook URL.

    Delivery is attempted once. Any non-2xx answer or transport failure
    raises :class:`~huddle.delivery.errors.DeliveryError`.

    Parameters
    ----------
    url
        Incoming webhook URL.
    http_client
        Optional client for testing. When omitted the adapter creates and
        owns one.

    """

    def __init__(
        self,
        url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        """Store the target URL and HTTP client."""
        if not url.strip():
            raise DeliveryError.missing_target("webhook_url")
        self._url = url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def deliver(self, text: str) -> None:
        """POST ``text`` to the webhook.

        Raises
        ------
        DeliveryError
            If the request fails or the webhook answers with a non-2xx status.

        """
        try:
            response = await self._client.post(self._url, json={"text": text})
        except httpx.HTTPError as exc:
            raise DeliveryError.network_error(_WEBHOOK_TARGET, str(exc)) from exc

        if not response.is_success:
            raise DeliveryError.http_error(response.status_code, _WEBHOOK_TARGET)

        log_info(logger, "Delivered %d characters to webhook", len(text))


__all__ = ["WebhookDelivery"]

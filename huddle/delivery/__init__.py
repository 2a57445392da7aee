"""Delivery adapters for finished reports and assistant replies."""

from __future__ import annotations

from .errors import DeliveryError
from .slack import DEFAULT_SLACK_API_URL, WORKING_REACTION, SlackThreadReplier
from .webhook import WebhookDelivery

__all__ = [
    "DEFAULT_SLACK_API_URL",
    "WORKING_REACTION",
    "DeliveryError",
    "SlackThreadReplier",
    "WebhookDelivery",
]

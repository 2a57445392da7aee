"""Timestamp helpers shared by connectors and the aggregator."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return the current instant as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp from an external API into UTC.

    The ``Z`` suffix used by GitHub, Linear and Notion is accepted. Naive
    timestamps are rejected rather than guessed.

    Raises
    ------
    ValueError
        If the text is not ISO-8601 or carries no offset.

    """
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"timestamp missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def parse_optional_timestamp(value: object) -> dt.datetime | None:
    """Parse ``value`` when it is a usable timestamp string, else ``None``."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def to_iso_z(value: dt.datetime) -> str:
    """Render an aware datetime in the ``YYYY-MM-DDTHH:MM:SSZ`` form APIs expect."""
    return value.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def short_date(value: dt.datetime | None) -> str:
    """Return the ``YYYY-MM-DD`` part of ``value``, or an empty string."""
    if value is None:
        return ""
    return value.astimezone(dt.UTC).date().isoformat()

"""Slack request signature verification (``v0`` HMAC-SHA256)."""

from __future__ import annotations

import hashlib
import hmac
import time
import typing as typ

from huddle.api.errors import InvalidSignatureError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

SIGNATURE_VERSION = "v0"
MAX_CLOCK_SKEW_S = 300


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    """Return the ``v0=<hex>`` signature Slack sends for ``body``.

    Examples
    --------
    >>> compute_signature("secret", "1531420618", b"token=x").startswith("v0=")
    True

    """
    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    digest = hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


class SignatureVerifier:
    """Check request signatures against a signing secret.

    Parameters
    ----------
    secret
        Slack app signing secret.
    clock
        Source of the current UNIX time, replaceable in tests.

    """

    def __init__(
        self, secret: str, *, clock: cabc.Callable[[], float] = time.time
    ) -> None:
        """Store the secret and clock."""
        self._secret = secret
        self._clock = clock

    def verify(self, timestamp: str | None, signature: str | None, body: bytes) -> None:
        """Raise :class:`InvalidSignatureError` unless ``signature`` is valid."""
        if not timestamp or not signature:
            raise InvalidSignatureError.missing_headers()

        try:
            sent_at = int(timestamp)
        except ValueError as exc:
            raise InvalidSignatureError.missing_headers() from exc

        skew = abs(self._clock() - sent_at)
        if skew > MAX_CLOCK_SKEW_S:
            raise InvalidSignatureError.stale(skew)

        expected = compute_signature(self._secret, timestamp, body)
        if not hmac.compare_digest(expected, signature):
            raise InvalidSignatureError.mismatch()


__all__ = [
    "MAX_CLOCK_SKEW_S",
    "SIGNATURE_VERSION",
    "SignatureVerifier",
    "compute_signature",
]

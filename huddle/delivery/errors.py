"""Failures raised while delivering a report."""

from __future__ import annotations


class DeliveryError(RuntimeError):
    """Raised when the output channel rejects or never receives a message.

    Attributes
    ----------
    status_code
        HTTP status returned by the channel, when one was received.

    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, target: str) -> DeliveryError:
        """Create an error for a non-2xx delivery response."""
        return cls(
            f"{target} responded with HTTP {status_code}", status_code=status_code
        )

    @classmethod
    def api_error(cls, method: str, error: str) -> DeliveryError:
        """Create an error for a Slack Web API call answered with ``ok: false``."""
        return cls(f"Slack {method} failed: {error}")

    @classmethod
    def network_error(cls, target: str, detail: str) -> DeliveryError:
        """Create an error for a request that never reached the channel."""
        return cls(f"could not reach {target}: {detail}")

    @classmethod
    def missing_target(cls, setting: str) -> DeliveryError:
        """Create an error for an unconfigured delivery target."""
        return cls(f"delivery target {setting!r} is not configured")


__all__ = ["DeliveryError"]

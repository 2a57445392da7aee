"""Typed failures raised by text generators."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Stderr/body preview length for error messages
_PREVIEW_LIMIT = 200


def _preview(text: str) -> str:
    text = text.strip()
    if len(text) > _PREVIEW_LIMIT:
        return text[:_PREVIEW_LIMIT] + "..."
    return text


class GenerationError(Exception):
    """Base exception for every text-generation failure.

    A generator either returns complete text or raises one of these; it
    never returns partial output.
    """


class GenerationTimeoutError(GenerationError):
    """Raised when a generator exceeds its time budget."""

    @classmethod
    def after(cls, backend: str, timeout_s: float) -> GenerationTimeoutError:
        """Create an error for a call that ran longer than ``timeout_s``."""
        return cls(f"{backend} generation timed out after {timeout_s:g}s")


class GenerationCommandError(GenerationError):
    """Raised when an external generation command fails.

    Attributes
    ----------
    returncode
        Exit status of the command, when it ran at all.

    """

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        """Initialise with a message and optional exit status."""
        self.returncode = returncode
        super().__init__(message)

    @classmethod
    def exit_status(
        cls, argv: cabc.Sequence[str], returncode: int, stderr: str
    ) -> GenerationCommandError:
        """Create an error for a command that exited non-zero."""
        msg = f"command {argv[0]!r} exited with status {returncode}"
        detail = _preview(stderr)
        if detail:
            msg = f"{msg}: {detail}"
        return cls(msg, returncode=returncode)

    @classmethod
    def not_found(cls, argv: cabc.Sequence[str]) -> GenerationCommandError:
        """Create an error for a command missing from ``PATH``."""
        return cls(f"command {argv[0]!r} not found")

    @classmethod
    def start_failed(
        cls, argv: cabc.Sequence[str], error: OSError
    ) -> GenerationCommandError:
        """Create an error for a command the OS refused to start."""
        reason = error.strerror or type(error).__name__
        return cls(f"command {argv[0]!r} could not be started: {reason}")

    @classmethod
    def empty_command(cls) -> GenerationCommandError:
        """Create an error for a blank command string."""
        return cls("generation command must be non-empty")


class GenerationAPIError(GenerationError):
    """Raised when a generation HTTP endpoint returns an error.

    Attributes
    ----------
    status_code
        HTTP status code from the API response, if available.

    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str = "") -> GenerationAPIError:
        """Create an error for an HTTP error response."""
        msg = f"chat completion HTTP error {status_code}"
        detail = _preview(body)
        if detail:
            msg = f"{msg}: {detail}"
        return cls(msg, status_code=status_code)

    @classmethod
    def rate_limited(cls, retry_after: int | None = None) -> GenerationAPIError:
        """Create an error for a 429 response."""
        msg = "chat completion rate limited"
        if retry_after is not None:
            msg = f"{msg}, retry after {retry_after}s"
        return cls(msg, status_code=429)

    @classmethod
    def network_error(cls, detail: str) -> GenerationAPIError:
        """Create an error for DNS, connection or TLS failures."""
        return cls(f"chat completion network error: {detail}")


class GenerationResponseShapeError(GenerationError):
    """Raised when a generation response lacks the expected fields."""

    @classmethod
    def missing(cls, field: str) -> GenerationResponseShapeError:
        """Create an error for a missing response field."""
        return cls(f"chat completion response missing expected field: {field}")

    @classmethod
    def invalid_json(cls, content: str) -> GenerationResponseShapeError:
        """Create an error for a body that is not JSON."""
        return cls(f"failed to parse chat completion JSON: {_preview(content)}")


class EmptyGenerationError(GenerationError):
    """Raised when a generator succeeds but produces only whitespace."""

    @classmethod
    def from_backend(cls, backend: str) -> EmptyGenerationError:
        """Create an error naming the backend that returned nothing."""
        return cls(f"{backend} returned empty output")


class GenerationConfigError(Exception):
    """Raised when generator configuration is invalid."""

    @classmethod
    def empty_api_key(cls) -> GenerationConfigError:
        """Create an error for a blank API key."""
        return cls("structuring API key must be non-empty")

    @classmethod
    def invalid_parameter(
        cls, parameter_name: str, value: str, constraint: str
    ) -> GenerationConfigError:
        """Create an error for an invalid configuration value."""
        return cls(f"Invalid {parameter_name} '{value}'. {constraint}")

    @classmethod
    def invalid_max_tokens(cls, value: str) -> GenerationConfigError:
        """Create an error for an invalid ``max_tokens`` value."""
        return cls.invalid_parameter("max_tokens", value, "Must be a positive integer")

    @classmethod
    def invalid_timeout(cls, value: str) -> GenerationConfigError:
        """Create an error for an invalid timeout value."""
        return cls.invalid_parameter("timeout", value, "Must be a positive number")


__all__ = [
    "EmptyGenerationError",
    "GenerationAPIError",
    "GenerationCommandError",
    "GenerationConfigError",
    "GenerationError",
    "GenerationResponseShapeError",
    "GenerationTimeoutError",
]

"""Errors raised inside source connectors."""

from __future__ import annotations


class SourceError(RuntimeError):
    """Base class for connector failures.

    Attributes
    ----------
    source
        Name of the connector that failed (``github``, ``tickets``, ...).

    """

    def __init__(self, message: str, *, source: str = "") -> None:
        """Initialise with a message and the failing source name."""
        self.source = source
        super().__init__(message)


class SourceAPIError(SourceError):
    """Raised when a source API answers with an error."""

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
        status_code: int | None = None,
    ) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, source=source)

    @classmethod
    def http_error(cls, source: str, status_code: int, url: str) -> SourceAPIError:
        """Return an error for a non-2xx HTTP response."""
        return cls(
            f"{source} API HTTP {status_code} for {url}",
            source=source,
            status_code=status_code,
        )

    @classmethod
    def graphql_errors(cls, source: str, errors: object) -> SourceAPIError:
        """Return an error for a GraphQL ``errors`` payload."""
        return cls(f"{source} GraphQL errors: {errors}", source=source)

    @classmethod
    def timeout(cls, source: str) -> SourceAPIError:
        """Return an error for a request that timed out."""
        return cls(f"{source} API request timed out", source=source)

    @classmethod
    def network_error(cls, source: str, detail: str) -> SourceAPIError:
        """Return an error for DNS, connection or TLS failures."""
        return cls(f"{source} API network error: {detail}", source=source)


class SourceResponseShapeError(SourceError):
    """Raised when a source response is missing a required structure."""

    @classmethod
    def missing(cls, source: str, field: str) -> SourceResponseShapeError:
        """Return an error for a missing response field."""
        return cls(
            f"{source} response missing expected field: {field}",
            source=source,
        )

    @classmethod
    def invalid_json(cls, source: str) -> SourceResponseShapeError:
        """Return an error for a body that is not valid JSON."""
        return cls(f"{source} response is not valid JSON", source=source)


class SourceConfigError(SourceError):
    """Raised when a connector cannot be built from the given settings."""

    @classmethod
    def missing_credential(cls, source: str, env_var: str) -> SourceConfigError:
        """Return an error when a required credential is absent."""
        return cls(f"{env_var} is required for the {source} source", source=source)

    @classmethod
    def missing_setting(cls, source: str, setting: str) -> SourceConfigError:
        """Return an error when a required setting is absent."""
        return cls(
            f"setting '{setting}' is required for the {source} source",
            source=source,
        )


__all__ = [
    "SourceAPIError",
    "SourceConfigError",
    "SourceError",
    "SourceResponseShapeError",
]

"""Domain exceptions and Falcon error handlers for the API layer.

Usage
-----
Register error handlers on the Falcon app::

    from huddle.api.errors import (
        InvalidInputError,
        InvalidSignatureError,
        handle_invalid_input,
        handle_invalid_signature,
    )

    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(InvalidSignatureError, handle_invalid_signature)

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "InvalidInputError",
    "InvalidSignatureError",
    "handle_invalid_input",
    "handle_invalid_signature",
]


class InvalidInputError(Exception):
    """Raised for malformed request bodies that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.

    """

    def __init__(self, reason: str) -> None:
        """Initialize with a validation reason."""
        self.reason = reason
        super().__init__(reason)


class InvalidSignatureError(Exception):
    """Raised when a request is not signed with the configured secret."""

    @classmethod
    def missing_headers(cls) -> InvalidSignatureError:
        """Create an error for a request without signature headers."""
        return cls("request signature headers are missing")

    @classmethod
    def stale(cls, skew_s: float) -> InvalidSignatureError:
        """Create an error for a timestamp outside the accepted skew."""
        return cls(f"request timestamp is {skew_s:.0f}s away from server time")

    @classmethod
    def mismatch(cls) -> InvalidSignatureError:
        """Create an error for a signature that does not verify."""
        return cls("request signature does not match")


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    resp.media = {"title": "Invalid input", "description": ex.reason}


async def handle_invalid_signature(
    _req: Request,
    resp: Response,
    ex: InvalidSignatureError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidSignatureError`` to an HTTP 401 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The verification failure.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_401
    resp.media = {"title": "Invalid signature", "description": str(ex)}

"""HTTP helpers shared by the GitHub, Linear and Notion connectors."""

from __future__ import annotations

import typing as typ

import httpx

from .errors import SourceAPIError, SourceResponseShapeError

_HTTP_ERROR_STATUS_THRESHOLD = 400


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: str,
    **kwargs: typ.Any,  # noqa: ANN401
) -> httpx.Response:
    """Send a request and translate transport and status failures.

    Raises
    ------
    SourceAPIError
        On timeouts, network failures or any status >= 400.

    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise SourceAPIError.timeout(source) from exc
    except httpx.RequestError as exc:
        raise SourceAPIError.network_error(source, str(exc)) from exc

    if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
        raise SourceAPIError.http_error(source, response.status_code, url)
    return response


def decode_json(response: httpx.Response, *, source: str) -> typ.Any:  # noqa: ANN401
    """Return the decoded JSON body of ``response``."""
    try:
        return response.json()
    except ValueError as exc:
        raise SourceResponseShapeError.invalid_json(source) from exc


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict[str, str | int] | None = None,
) -> tuple[typ.Any, httpx.Response]:
    """GET ``url`` and return the decoded body alongside the response."""
    response = await send(client, "GET", url, source=source, params=params)
    return decode_json(response, source=source), response


async def post_graphql(
    client: httpx.AsyncClient,
    endpoint: str,
    query: str,
    variables: dict[str, typ.Any],
    *,
    source: str,
) -> dict[str, typ.Any]:
    """POST a GraphQL query and return its ``data`` object.

    Raises
    ------
    SourceAPIError
        When the server answers with an error status or ``errors`` payload.
    SourceResponseShapeError
        When ``data`` is missing from the payload.

    """
    response = await send(
        client,
        "POST",
        endpoint,
        source=source,
        json={"query": query, "variables": variables},
    )
    payload = decode_json(response, source=source)
    if not isinstance(payload, dict):
        raise SourceResponseShapeError.missing(source, "data")
    if payload.get("errors"):
        raise SourceAPIError.graphql_errors(source, payload["errors"])
    data = payload.get("data")
    if not isinstance(data, dict):
        raise SourceResponseShapeError.missing(source, "data")
    return data


def as_dict(value: object) -> dict[str, typ.Any]:
    """Return ``value`` when it is a mapping, else an empty dict."""
    if isinstance(value, dict):
        return typ.cast("dict[str, typ.Any]", value)
    return {}


def as_dict_list(value: object) -> list[dict[str, typ.Any]]:
    """Return the dict entries of ``value`` when it is a list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def nested(data: object, *keys: str) -> object:
    """Traverse nested mappings, returning ``None`` for missing keys."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def nested_str(data: object, *keys: str) -> str | None:
    """Return a nested non-empty string value, or ``None``."""
    value = nested(data, *keys)
    if isinstance(value, str) and value:
        return value
    return None

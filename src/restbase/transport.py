"""
Module to perform HTTP requests on behalf of resource clients.

A transport exposes the asynchronous verbs get, put, post and delete; each returns a response
containing the decoded body, or raises an exception if the request failed. A caching
transport additionally exposes get_with_cache, which can serve a response from a cache keyed
by URL.

HTTPXTransport implements both protocols using an httpx asynchronous client.
"""

import dataclasses
import httpx
import logging
import restbase.params
import secrets

from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from restbase.cache import Cache, MemoryCache, cache_key
from restbase.error import NotFoundError, TransportError, errors
from restbase.params import ParamsSerializer
from typing import Any, Protocol, runtime_checkable


_logger = logging.getLogger(__name__)


@dataclass
class Response:
    """
    Response to a transport request.

    Parameters and attributes:
    • status: HTTP status code
    • data: decoded response body, or None if no body
    • headers: response headers
    """

    status: int = 200
    data: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass
class Form:
    """
    Form payload, always sent as multipart/form-data.

    Parameters and attributes:
    • fields: form field names and values
    • files: file field names and content; content is bytes, or a (filename, bytes) or
      (filename, bytes, content_type) tuple
    """

    fields: dict[str, Any] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """Prototype transport."""

    params_serializer: ParamsSerializer | None

    async def get(self, url: str, params: Mapping[str, Any] | None = None) -> Response:
        ...

    async def post(self, url: str, body: Any) -> Response:
        ...

    async def put(self, url: str, body: Any) -> Response:
        ...

    async def delete(self, url: str) -> Response:
        ...


@runtime_checkable
class CachingTransport(Transport, Protocol):
    """Prototype transport that can serve get requests from a cache."""

    async def get_with_cache(
        self, url: str, *, use_cache: bool = True, ttl: int | float = 1000
    ) -> Response:
        ...


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        return response.json()
    return response.text


def _form_part(boundary: str, disposition: str, content: Any, content_type: str | None = None):
    headers = f"--{boundary}\r\nContent-Disposition: form-data; {disposition}\r\n"
    if content_type:
        headers += f"Content-Type: {content_type}\r\n"
    if not isinstance(content, bytes):
        content = str(content).encode()
    return headers.encode() + b"\r\n" + content + b"\r\n"


def _encode_form(form: Form) -> dict[str, Any]:
    boundary = secrets.token_hex(16)
    parts = [
        _form_part(boundary, f'name="{name}"', value)
        for name, value in form.fields.items()
    ]
    for name, value in form.files.items():
        if not isinstance(value, tuple):
            value = (name, value)
        filename, content, content_type = (*value, None)[:3]
        parts.append(
            _form_part(
                boundary,
                f'name="{name}"; filename="{filename}"',
                content,
                content_type or "application/octet-stream",
            )
        )
    return {
        "content": b"".join(parts) + f"--{boundary}--\r\n".encode(),
        "headers": {"Content-Type": f"multipart/form-data; boundary={boundary}"},
    }


def _request_body(body: Any) -> dict[str, Any]:
    if body is None:
        return {}
    if isinstance(body, Form):
        return _encode_form(body)
    if dataclasses.is_dataclass(body) and not isinstance(body, type):
        return {"json": dataclasses.asdict(body)}
    if isinstance(body, (bytes, str)):
        return {"content": body}
    return {"json": body}


class HTTPXTransport:
    """
    Transport that performs requests with an httpx asynchronous client.

    Parameters:
    • base_url: URL that relative request URLs are resolved against
    • token: bearer token to attach to each request  [no authentication]
    • headers: headers to include in each request
    • timeout: request timeout in seconds
    • client: httpx client to perform requests with  [new client]
    • cache: cache for get_with_cache responses  [new memory cache]
    • params_serializer: query string serialization policy  [repeat]

    Responses with a status other than 2xx raise the error for the status from
    restbase.error.errors. Requests that receive no response raise TransportError.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        token: str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        cache: Cache | None = None,
        params_serializer: ParamsSerializer | None = None,
    ):
        headers = dict(headers or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url, timeout=timeout, follow_redirects=True
            )
        self.client = client
        self.headers = headers
        self.cache = cache if cache is not None else MemoryCache()
        self.params_serializer = params_serializer or restbase.params.repeat

    async def __aenter__(self) -> "HTTPXTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client and release its connections."""
        await self.client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Response:
        """Perform a request and return its response."""
        query = list(self.params_serializer(params).items()) if params else None
        _logger.debug("request: %s %s %s", method, url, query or "")
        content = _request_body(body)
        headers = self.headers | content.pop("headers", {})
        try:
            response = await self.client.request(
                method, url, params=query, headers=headers, **content
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e}") from e
        if not response.is_success:
            _logger.debug("response: %s %s %d", method, url, response.status_code)
            raise errors.for_status(response.status_code)(
                f"{method} {url}: {response.status_code} {response.text}"
            )
        return Response(
            status=response.status_code, data=_decode(response), headers=dict(response.headers)
        )

    async def get(self, url: str, params: Mapping[str, Any] | None = None) -> Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, body: Any) -> Response:
        return await self.request("POST", url, body=body)

    async def put(self, url: str, body: Any) -> Response:
        return await self.request("PUT", url, body=body)

    async def delete(self, url: str) -> Response:
        return await self.request("DELETE", url)

    async def get_with_cache(
        self, url: str, *, use_cache: bool = True, ttl: int | float = 1000
    ) -> Response:
        """
        Perform a get request, serving the response from the cache if an unexpired entry
        exists for the URL.

        Parameters:
        • url: request URL
        • use_cache: read and store the response in the cache
        • ttl: time to live of the cached response in milliseconds
        """
        if not use_cache:
            return await self.get(url)
        key = cache_key(url)
        with suppress(NotFoundError):
            response = await self.cache.get(key)
            _logger.debug("returning cached response: %s", url)
            return response
        response = await self.get(url)
        await self.cache.put(key, response, ttl)
        return response

"""
Module to implement clients of REST resources.

A resource client exposes uniform operations on a REST resource: index, get, create, update
and delete. It resolves the URLs of the resource through an endpoint resolver, and delegates
transport details to hooks supplied at construction:

  • transport: produce an authenticated transport
  • raw_transport: produce an unauthenticated transport
  • configure_params: set the query string serialization policy of a transport
  • normalize_list: convert a raw list response into a page
  • normalize_filter: convert an index filter into query string parameters
  • normalize_item: convert a fetched item, e.g. to rename or coerce its fields

A resource client holds no per-request state; its operations can be called concurrently.
"""

import dataclasses
import functools
import logging
import restbase.monitor as monitor
import restbase.pagination
import wrapt

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from restbase.endpoint import EndpointResolver
from restbase.pagination import Filter, ListFunction, Page
from restbase.transport import Form, Response, Transport
from typing import Any, Generic, TypeVar


_logger = logging.getLogger(__name__)


T = TypeVar("T")
G = TypeVar("G")
M = TypeVar("M")


@dataclass(frozen=True)
class Hooks(Generic[T]):
    """
    Hooks that a resource client delegates transport details to.

    Parameters and attributes:
    • transport: return a transport that attaches authentication to requests
    • raw_transport: return a transport that does not attach authentication
    • configure_params: set the query string serialization policy of a transport
    • normalize_list: convert a list response into a page of items
    • normalize_filter: convert an index filter into query string parameters
    • normalize_item: convert a fetched item
    """

    transport: Callable[[], Transport]
    raw_transport: Callable[[], Transport]
    configure_params: Callable[[Transport], None]
    normalize_list: Callable[[Response], Page[T]]
    normalize_filter: Callable[[Filter], Mapping[str, Any]]
    normalize_item: Callable[[G], G]


def operation(wrapped: Callable | None = None, *, name: str | None = None) -> Callable:
    """
    Decorate a resource client coroutine method as an operation.

    Parameters:
    • name: name of operation  [name of wrapped coroutine]

    When an operation is called, its arguments are logged at DEBUG level, and an invocation
    counter with success/failure status and a duration gauge are recorded to monitors.
    """

    if wrapped is None:
        return functools.partial(operation, name=name)

    operation_name = name or wrapped.__name__

    @wrapt.decorator
    async def wrapper(wrapped, instance, args, kwargs):
        cls = instance.__class__
        tags = {"resource": f"{cls.__module__}.{cls.__qualname__}", "operation": operation_name}
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug(
                "operation: %s.%s(%s)",
                tags["resource"],
                operation_name,
                ", ".join(
                    [*(repr(a) for a in args), *(f"{k}={v!r}" for k, v in kwargs.items())]
                ),
            )
        async with monitor.counter(name="operation_invocations", tags=tags, status="status"):
            async with monitor.timer(name="operation_duration", tags=tags):
                return await wrapped(*args, **kwargs)

    return wrapper(wrapped)


def overlay(response: Mapping[str, Any] | None, defaults: T) -> T:
    """
    Overlay response fields on default values.

    Parameters:
    • response: fetched fields
    • defaults: default values; a mapping or dataclass instance

    Fields present in the response take precedence; default values fill fields absent from
    the response. Dataclass defaults only receive response fields that are dataclass fields.
    A response that is not a mapping raises TypeError.
    """
    if response is None:
        response = {}
    elif not isinstance(response, Mapping):
        raise TypeError(f"response is not a mapping: {type(response).__name__}")
    if dataclasses.is_dataclass(defaults) and not isinstance(defaults, type):
        names = {f.name for f in dataclasses.fields(defaults) if f.init}
        fields = {k: v for k, v in response.items() if k in names}
        return dataclasses.replace(defaults, **fields)
    return {**(defaults or {}), **response}


class ResourceClient(Generic[T]):
    """
    Client of a REST resource whose items are of type T.

    Parameters:
    • base_endpoint: URL of the resource collection; URL string, awaitable or coroutine
      function that produces the URL
    • hooks: hooks to delegate transport details to
    • default_object: default values of fetched items  [empty dict]

    Attributes:
    • endpoints: resolver of the resource collection and item URLs
    • hooks: hooks to delegate transport details to
    • default_object: default values of fetched items
    """

    def __init__(self, base_endpoint: Any, hooks: Hooks[T], default_object: T | None = None):
        self.endpoints = EndpointResolver(base_endpoint)
        self.hooks = hooks
        self.default_object = default_object if default_object is not None else {}

    def transport(self) -> Transport:
        """Return an authenticated transport, configured with its serialization policy."""
        transport = self.hooks.transport()
        self.hooks.configure_params(transport)
        return transport

    def raw_transport(self) -> Transport:
        """Return an unauthenticated transport, configured with its serialization policy."""
        transport = self.hooks.raw_transport()
        self.hooks.configure_params(transport)
        return transport

    def normalize(self, response: Mapping[str, Any] | None, defaults: T) -> T:
        """Overlay response fields on default values; see overlay."""
        return overlay(response, defaults)

    def get_normalized_list(self, items: Iterable[G]) -> list[G]:
        """Return items converted by the normalize_item hook, in the same order."""
        return [self.hooks.normalize_item(item) for item in items]

    @operation
    async def index(self, filters: Filter | None = None) -> Page[T]:
        """Return a page of resource items."""
        if filters is None:
            filters = {"length": 10}
        base = await self.endpoints.resolve_base()
        response = await self.transport().get(base, params=self.hooks.normalize_filter(filters))
        page = self.hooks.normalize_list(response)
        page.data = self.get_normalized_list(page.data)
        return page

    @operation
    async def get(self, id: str, use_cache: bool = True, ttl: int | float = 1000) -> T:
        """
        Return a resource item.

        Parameters:
        • id: identifier of the item
        • use_cache: serve the item from the transport's response cache
        • ttl: time to live of the cached response in milliseconds

        If use_cache is true, the transport must provide a get_with_cache method. The response
        data must be a mapping, or None.
        """
        url = await self.endpoints.resolve_by_id(id)
        transport = self.transport()
        if use_cache:
            if not hasattr(transport, "get_with_cache"):
                raise TypeError("transport has no get_with_cache method")
            response = await transport.get_with_cache(url, use_cache=use_cache, ttl=ttl)
        else:
            response = await transport.get(url)
        return self.hooks.normalize_item(self.normalize(response.data, self.default_object))

    @operation
    async def create(self, data: T | Form) -> int:
        """Create a resource item and return its identifier."""
        base = await self.endpoints.resolve_base()
        response = await self.transport().post(base, data)
        return response.data["id"]

    @operation
    async def update(self, id: str, data: T | Form) -> None:
        """Update a resource item."""
        url = await self.endpoints.resolve_by_id(id)
        await self.transport().put(url, data)

    @operation
    async def delete(self, id: str) -> None:
        """Delete a resource item."""
        url = await self.endpoints.resolve_by_id(id)
        await self.transport().delete(url)

    async def get_all_pages_base_list(
        self, filters: Filter | None = None, page_size: int = 50
    ) -> list[T]:
        """
        Return the items of all pages of the resource. If any page could not be fetched, an
        empty list is returned.
        """
        return await restbase.pagination.get_all_pages(self.index, filters, page_size)

    async def get_all_pages(
        self,
        list_fn: ListFunction[M],
        filters: Filter | None = None,
        page_size: int = 50,
    ) -> list[M]:
        """
        Return the items of all pages returned by a list function, such as the index
        operation of a related resource. If any page could not be fetched, an empty list is
        returned.
        """
        return await restbase.pagination.get_all_pages(list_fn, filters, page_size)

"""
Module to resolve resource endpoint URLs.

The base endpoint of a resource is either known immediately, or must be awaited because it is
only available after an asynchronous lookup (e.g. service discovery). An endpoint is
expressed as one of two tags:

  • Immediate: contains a URL string
  • Pending: contains a source that asynchronously produces a URL string

The URL of an individual item is always derived from the current base endpoint at the time of
resolution; reassigning the base endpoint affects all subsequent resolutions.
"""

import asyncio
import inspect
import logging

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any


_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Immediate:
    """An endpoint whose URL is immediately known."""

    url: str

    async def resolve(self) -> str:
        return self.url


class Pending:
    """
    An endpoint whose URL is produced asynchronously.

    Parameters:
    • source: no-argument coroutine function, or awaitable object, that produces the URL

    All concurrent resolutions await a single shared task; the source is not invoked again
    while a resolution is in flight. A successful result is retained for subsequent
    resolutions.

    A failed resolution is not retained. If the source is a coroutine function, the next
    resolution invokes it again. An awaitable object can only be awaited once; its failure is
    raised again on each subsequent resolution.
    """

    def __init__(self, source: Callable[[], Awaitable[str]] | Awaitable[str]):
        if inspect.isawaitable(source):
            self._factory = None
            self._awaitable = source
        elif callable(source):
            self._factory = source
            self._awaitable = None
        else:
            raise TypeError("source must be a coroutine function or awaitable")
        self._task: asyncio.Future | None = None

    def _failed(self) -> bool:
        return self._task.done() and (
            self._task.cancelled() or self._task.exception() is not None
        )

    async def resolve(self) -> str:
        if self._task is None:
            self._task = asyncio.ensure_future(
                self._awaitable if self._factory is None else self._factory()
            )
        elif self._factory and self._failed():
            _logger.debug("retrying failed endpoint resolution")
            self._task = asyncio.ensure_future(self._factory())
        if self._task.done():
            return self._task.result()
        return await asyncio.shield(self._task)

    def __repr__(self):
        return f"Pending({self._factory or self._awaitable!r})"


Endpoint = Immediate | Pending


def endpoint(value: Any) -> Endpoint:
    """
    Return an endpoint tag for the specified value.

    Parameters:
    • value: URL string, awaitable, no-argument coroutine function or endpoint tag
    """
    if isinstance(value, (Immediate, Pending)):
        return value
    if isinstance(value, str):
        return Immediate(value)
    return Pending(value)


class EndpointResolver:
    """
    Resolves the collection and item URLs of a resource.

    Parameters and attributes:
    • base: collection endpoint; URL string, awaitable, coroutine function or endpoint tag
    • extensions: additional named endpoints, not interpreted by the resolver
    """

    def __init__(self, base: Any, **extensions: Any):
        self.base = base
        self.extensions = dict(extensions)

    @property
    def base(self) -> Endpoint:
        return self._base

    @base.setter
    def base(self, value: Any):
        self._base = endpoint(value)

    async def resolve_base(self) -> str:
        """Return the collection URL."""
        return await self._base.resolve()

    async def resolve_by_id(self, id: str) -> str:
        """Return the URL of the item with the specified identifier."""
        return f"{await self.resolve_base()}/{id}"

    def __repr__(self):
        return f"EndpointResolver(base={self._base!r}, extensions={self.extensions!r})"

"""
Module to support pagination of resource items.

A resource that returns a large set of items returns them in pages. A page is requested with
a filter that contains the number of items to return ("length"), the position of the first
item to return ("offset"), and optionally whether the total number of items should be
reported ("withTotal").

To fetch all items, get_all_pages requests the first page, which reports the total number
of items. From the total, the number of remaining pages is computed and those pages are
requested concurrently. Items are returned in page order, regardless of the order in which
page requests complete.

If fetching any page fails, the failure is logged and an empty list is returned; callers
cannot distinguish a failure from a resource that has no items.
"""

import asyncio
import logging
import math

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar


_logger = logging.getLogger(__name__)


Item = TypeVar("Item")


@dataclass
class Page(Generic[Item]):
    """
    A page of items returned from a list request.

    Parameters and attributes:
    • data: items in the page
    • offset: position of the first item in the page
    • page: page number
    • length: maximum number of items in the page
    • total: total number of items in all pages
    • extensions: additional response values, passed through unmodified
    """

    data: list[Item] = field(default_factory=list)
    offset: int | None = None
    page: int | None = None
    length: int | None = None
    total: int | None = None
    extensions: dict[str, Any] = field(default_factory=dict)


Filter = Mapping[str, Any]
ListFunction = Callable[[Filter], Awaitable[Page[Item]]]

_page_fields = ("offset", "page", "length", "total")


def page_from_json(value: Mapping[str, Any] | list | None) -> Page:
    """
    Return a page from a decoded JSON list response.

    A JSON array is returned as the page items. In a JSON object, the "data" value contains
    the items; "offset", "page", "length" and "total" values populate the page attributes;
    all other values are retained in page extensions.
    """
    if value is None:
        return Page()
    if isinstance(value, list):
        return Page(data=value)
    return Page(
        data=list(value.get("data") or []),
        **{k: value[k] for k in _page_fields if value.get(k) is not None},
        extensions={k: v for k, v in value.items() if k != "data" and k not in _page_fields},
    )


async def get_all_pages(
    list_fn: ListFunction,
    filters: Filter | None = None,
    page_size: int = 50,
    concurrency: int | None = None,
) -> list[Item]:
    """
    Fetch all pages of items and return the items of all pages.

    Parameters:
    • list_fn: coroutine function that receives a filter and returns a page
    • filters: filter values to include in the first page request
    • page_size: number of items to request in each page
    • concurrency: maximum number of concurrent page requests  [unlimited]

    Filter values apply to the first page request only; the remaining pages are requested
    with length, offset and withTotal values.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    if concurrency is not None and concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    semaphore = asyncio.Semaphore(concurrency) if concurrency else None

    async def fetch(page: int) -> list[Item]:
        filter = {"length": page_size, "offset": page * page_size, "withTotal": False}
        if not semaphore:
            return (await list_fn(filter)).data
        async with semaphore:
            return (await list_fn(filter)).data

    try:
        first = await list_fn(
            {"length": page_size, "offset": 0, "withTotal": True, **(filters or {})}
        )
        total_pages = math.ceil((first.total or 0) / page_size)
        pages = await asyncio.gather(*(fetch(page) for page in range(1, total_pages)))
        return [*first.data, *(item for data in pages for item in data)]
    except Exception:
        _logger.exception("error fetching all pages")
        return []

"""Module to cache response data in memory."""

import hashlib
import json
import logging

from collections import namedtuple
from collections.abc import Mapping
from copy import deepcopy
from restbase.error import InsufficientStorageError, NotFoundError
from time import monotonic
from typing import Any, Protocol, runtime_checkable


_logger = logging.getLogger(__name__)


JSON = Any


@runtime_checkable
class Cache(Protocol):
    """Prototype response cache."""

    async def get(self, key: str) -> Any:
        ...

    async def put(self, key: str, value: Any, ttl: int | float) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


def hash_json(value: JSON) -> str:
    """
    Return a deterministic, unique hash value for a given JSON object model value.
    """
    return hashlib.sha256(
        json.dumps(value, separators=(",", ":"), sort_keys=True, default=str).encode()
    ).hexdigest()


def cache_key(url: str, params: Mapping[str, Any] | None = None) -> str:
    """Return a cache entry key for a request URL and optional query parameters."""
    if not params:
        return url
    return f"{url}#{hash_json(sorted((k, str(v)) for k, v in params.items()))}"


class MemoryCache:
    """
    Stores response data in memory, with a time-to-live for each entry.

    Parameters:
    • size: maximum number of entries to store  [unlimited]
    • evict: evict oldest entry to make room for a new entry

    Values are deep-copied when stored and retrieved, so callers can freely mutate them.
    """

    _Entry = namedtuple("_Entry", "value,time,expires")

    def __init__(self, size: int | None = None, evict: bool = True):
        self.size = size
        self.evict = evict
        self._storage: dict[str, MemoryCache._Entry] = {}

    def _purge(self, now: float) -> None:
        for key in {key for key, entry in self._storage.items() if entry.expires <= now}:
            del self._storage[key]

    async def get(self, key: str) -> Any:
        """Return cached value; raises NotFoundError if no unexpired entry exists."""
        entry = self._storage.get(key)
        if not entry or monotonic() >= entry.expires:
            raise NotFoundError(key)
        return deepcopy(entry.value)

    async def put(self, key: str, value: Any, ttl: int | float) -> None:
        """
        Store value in the cache.

        Parameters:
        • key: cache entry key
        • value: value to store
        • ttl: time to live in milliseconds
        """
        now = monotonic()
        self._purge(now)
        self._storage.pop(key, None)
        if self.size and self.evict:
            while len(self._storage) >= self.size:
                oldest = min(self._storage, key=lambda k: self._storage[k].time)
                _logger.debug("evicting cache entry: %s", oldest)
                del self._storage[oldest]
        if self.size and len(self._storage) >= self.size:
            raise InsufficientStorageError
        self._storage[key] = MemoryCache._Entry(deepcopy(value), now, now + ttl / 1000)

    async def delete(self, key: str) -> None:
        """Remove entry from the cache, if it exists."""
        self._storage.pop(key, None)

    async def clear(self) -> None:
        """Remove all entries from the cache."""
        self._storage.clear()

    def __len__(self):
        return len(self._storage)

"""In-memory named cache storage.

Modelled on the browser Cache Storage API: a ``CacheStorage`` holds named
``Cache`` objects, each mapping a request identity to a stored response.

No locking. Concurrent ``put()`` calls for the same key are last-writer-wins,
which is acceptable because every entry can be re-derived from the network.
"""

from collections.abc import Iterator
from typing import TypeAlias

from page9.http.request import Request
from page9.http.response import Response

CacheKey: TypeAlias = tuple[str, str]

# Only safe, idempotent requests are stored
CACHEABLE_METHODS = frozenset({"GET"})


class Cache:
    """A single named cache: request identity -> Response."""

    __slots__ = ("_entries", "name")

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[CacheKey, Response] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"Cache({self.name!r}, entries={len(self._entries)})"

    def match(self, request: Request) -> Response | None:
        """Return the stored response for *request*, or ``None``."""
        if request.method not in CACHEABLE_METHODS:
            return None
        return self._entries.get(request.cache_key)

    def put(self, request: Request, response: Response) -> bool:
        """Store *response* under *request*'s identity.

        Returns False (and stores nothing) for non-cacheable methods.
        """
        if request.method not in CACHEABLE_METHODS:
            return False
        self._entries[request.cache_key] = response
        return True

    def delete(self, request: Request) -> bool:
        return self._entries.pop(request.cache_key, None) is not None

    def keys(self) -> list[CacheKey]:
        return list(self._entries)


class CacheStorage:
    """Named caches for one session.

    Pass the same instance to successive kernels to model a kernel upgrade:
    the new version's activation purges the old version's cache.
    """

    __slots__ = ("_caches",)

    def __init__(self) -> None:
        self._caches: dict[str, Cache] = {}

    def open(self, name: str) -> Cache:
        """Return the cache called *name*, creating it if needed."""
        cache = self._caches.get(name)
        if cache is None:
            cache = Cache(name)
            self._caches[name] = cache
        return cache

    def has(self, name: str) -> bool:
        return name in self._caches

    def keys(self) -> list[str]:
        """Names of all existing caches, in creation order."""
        return list(self._caches)

    def delete(self, name: str) -> bool:
        """Delete the cache called *name*. Returns True if it existed."""
        return self._caches.pop(name, None) is not None

"""Version-tagged cache lifecycle.

The kernel writes to exactly one cache, named after its version::

    cache_name("page9-kernel", "0.1.0") == "page9-kernel-v0.1.0"

Activation deletes every other cache under the same prefix. There is no LRU
and no TTL; a manual clear empties the current-version cache only.
"""

import logging

from page9.cache.storage import Cache, CacheStorage

logger = logging.getLogger("page9.cache")


def cache_name(prefix: str, version: str) -> str:
    """``<prefix>-v<version>``."""
    return f"{prefix}-v{version}"


class CacheLifecycle:
    """Names, opens, purges and clears the kernel's versioned cache."""

    __slots__ = ("_prefix", "_storage", "name")

    def __init__(self, storage: CacheStorage, prefix: str, version: str) -> None:
        self._storage = storage
        self._prefix = prefix
        self.name = cache_name(prefix, version)

    @property
    def storage(self) -> CacheStorage:
        return self._storage

    def open(self) -> Cache:
        """The current-version cache (created on first use)."""
        return self._storage.open(self.name)

    def purge_stale(self) -> list[str]:
        """Delete every prefixed cache except the current one.

        Caches outside the prefix are left alone. Returns deleted names.
        """
        stale = [
            name
            for name in self._storage.keys()
            if name.startswith(f"{self._prefix}-") and name != self.name
        ]
        for name in stale:
            self._storage.delete(name)
            logger.info("Deleted stale cache %s", name)
        return stale

    def clear(self) -> bool:
        """Delete the current-version cache. Returns True if it existed."""
        deleted = self._storage.delete(self.name)
        logger.info("Cleared cache %s", self.name)
        return deleted

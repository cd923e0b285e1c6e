"""Namespace resolution: longest-prefix mount selection.

A mount translates a virtual path prefix into a physical one::

    Mount(path="/docs", target="/content/docs")
    "/docs/intro.md"  ->  "/content/docs/intro.md"

Several mounts may share a prefix (a union mount). The longest qualifying
prefix wins; among equal-length prefixes the first-declared mount wins, so
resolution is deterministic for a given configuration.
"""

from collections.abc import Iterable

from page9.config import Mount
from page9.routing.route import MountMatch


class Namespace:
    """Compiled mount table."""

    __slots__ = ("_mounts",)

    def __init__(self, mounts: Iterable[Mount]) -> None:
        self._mounts: tuple[Mount, ...] = tuple(mounts)

    def __len__(self) -> int:
        return len(self._mounts)

    @property
    def mounts(self) -> tuple[Mount, ...]:
        return self._mounts

    def find(self, path: str) -> Mount | None:
        """Return the winning mount for *path*, or ``None``."""
        best: Mount | None = None
        # An empty mount path never qualifies
        best_length = 0
        for mount in self._mounts:
            # Strictly greater: an equal-length later mount never displaces
            # the earlier one
            if path.startswith(mount.path) and len(mount.path) > best_length:
                best = mount
                best_length = len(mount.path)
        return best

    def resolve(self, path: str) -> MountMatch | None:
        """Resolve *path* to a mount and its translated physical path."""
        mount = self.find(path)
        if mount is None:
            return None
        return MountMatch(mount=mount, translated_path=mount.target + path[len(mount.path) :])

"""RouteMatch and MountMatch frozen dataclasses."""

from dataclasses import dataclass

from page9.config import Mount, Route


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match.

    ``captures`` holds what each ``*`` in the pattern consumed, in order.
    Exact matches have no captures.
    """

    route: Route
    captures: tuple[str, ...] = ()
    exact: bool = False


@dataclass(frozen=True, slots=True)
class MountMatch:
    """Result of namespace resolution: the winning mount and translated path."""

    mount: Mount
    translated_path: str

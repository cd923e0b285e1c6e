"""Kernel configuration resource model.

The configuration is a tree of frozen dataclasses. It is built once from
the JSON resource (or the built-in default) and never mutated: a reload
produces a brand-new ``KernelConfig`` that replaces the old one wholesale.

JSON shape::

    {
      "namespace": {"root": "/", "mounts": [{"path": ..., "target": ..., "type": "dir"}]},
      "kernel": {"cachingStrategy": "cache-first", "interceptPatterns": ["/*"]},
      "workers": {"enabled": true, "pool": {"min": 1, "max": 4}, "modules": []},
      "routes": {"/api/*": {"file": "/data/api.json", "headers": {...}}}
    }

Missing fields take their defaults, unknown fields are ignored.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from page9 import __version__
from page9.errors import ConfigurationError

CACHE_FIRST = "cache-first"
NETWORK_FIRST = "network-first"
STALE_WHILE_REVALIDATE = "stale-while-revalidate"

MOUNT_TYPES = frozenset({"dir", "file"})


@dataclass(frozen=True, slots=True)
class Mount:
    """A virtual-prefix to physical-prefix translation rule."""

    path: str
    target: str
    type: str = "dir"


@dataclass(frozen=True, slots=True)
class Route:
    """A route entry: fetch ``file`` for requests matching ``pattern``.

    ``headers`` override same-named headers on the fetched response.
    """

    pattern: str
    file: str
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class NamespaceConfig:
    root: str = "/"
    mounts: tuple[Mount, ...] = ()


@dataclass(frozen=True, slots=True)
class KernelSettings:
    version: str = __version__
    caching_strategy: str = CACHE_FIRST
    intercept_patterns: tuple[str, ...] = ("/*",)
    # Off by default: route files are fetched literally, "{path}" included
    substitute_placeholders: bool = False


@dataclass(frozen=True, slots=True)
class PoolSize:
    min: int = 1
    max: int = 4


@dataclass(frozen=True, slots=True)
class WorkerModule:
    """A named worker process running a handler module.

    ``path`` is either a ``.py`` file or a dotted import path.
    """

    name: str
    path: str
    type: str = "module"


@dataclass(frozen=True, slots=True)
class WorkersConfig:
    enabled: bool = True
    pool: PoolSize = field(default_factory=PoolSize)
    modules: tuple[WorkerModule, ...] = ()


@dataclass(frozen=True, slots=True)
class KernelConfig:
    """The complete kernel configuration. Immutable once loaded."""

    namespace: NamespaceConfig = field(default_factory=NamespaceConfig)
    kernel: KernelSettings = field(default_factory=KernelSettings)
    workers: WorkersConfig = field(default_factory=WorkersConfig)
    # Declaration order is significant (pattern tie-break)
    routes: tuple[Route, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Render back to the JSON resource shape."""
        routes: dict[str, Any] = {}
        for route in self.routes:
            entry: dict[str, Any] = {"file": route.file}
            if route.headers:
                entry["headers"] = dict(route.headers)
            routes[route.pattern] = entry
        return {
            "namespace": {
                "root": self.namespace.root,
                "mounts": [
                    {"path": m.path, "target": m.target, "type": m.type}
                    for m in self.namespace.mounts
                ],
            },
            "kernel": {
                "version": self.kernel.version,
                "cachingStrategy": self.kernel.caching_strategy,
                "interceptPatterns": list(self.kernel.intercept_patterns),
                "substitutePlaceholders": self.kernel.substitute_placeholders,
            },
            "workers": {
                "enabled": self.workers.enabled,
                "pool": {"min": self.workers.pool.min, "max": self.workers.pool.max},
                "modules": [
                    {"name": m.name, "path": m.path, "type": m.type}
                    for m in self.workers.modules
                ],
            },
            "routes": routes,
        }


def default_config() -> KernelConfig:
    """Return the built-in default configuration.

    No mounts, no routes, cache-first for everything, one generic worker.
    """
    return KernelConfig()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        msg = f"'{key}' must be an object, got {type(value).__name__}"
        raise ConfigurationError(msg)
    return value


def _string(data: Mapping[str, Any], key: str, default: str, where: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        msg = f"'{where}.{key}' must be a string, got {type(value).__name__}"
        raise ConfigurationError(msg)
    return value


def _list(data: Mapping[str, Any], key: str, where: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"'{where}.{key}' must be a list, got {type(value).__name__}"
        raise ConfigurationError(msg)
    return value


def _int(data: Mapping[str, Any], key: str, default: int, where: str) -> int:
    value = data.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"'{where}.{key}' must be an integer, got {type(value).__name__}"
        raise ConfigurationError(msg)
    return value


def _parse_mount(raw: Any, index: int) -> Mount:
    where = f"namespace.mounts[{index}]"
    if not isinstance(raw, Mapping):
        msg = f"'{where}' must be an object"
        raise ConfigurationError(msg)
    if "path" not in raw or "target" not in raw:
        msg = f"'{where}' requires 'path' and 'target'"
        raise ConfigurationError(msg)
    mount_type = _string(raw, "type", "dir", where)
    if mount_type not in MOUNT_TYPES:
        msg = f"'{where}.type' must be one of {sorted(MOUNT_TYPES)}, got {mount_type!r}"
        raise ConfigurationError(msg)
    return Mount(
        path=_string(raw, "path", "", where),
        target=_string(raw, "target", "", where),
        type=mount_type,
    )


def _parse_route(pattern: str, raw: Any) -> Route:
    where = f"routes[{pattern!r}]"
    # Shorthand: "pattern": "/file.json"
    if isinstance(raw, str):
        return Route(pattern=pattern, file=raw)
    if not isinstance(raw, Mapping) or "file" not in raw:
        msg = f"'{where}' must be an object with a 'file' field"
        raise ConfigurationError(msg)
    headers_raw = raw.get("headers")
    if headers_raw is None:
        headers_raw = {}
    if not isinstance(headers_raw, Mapping):
        msg = f"'{where}.headers' must be an object"
        raise ConfigurationError(msg)
    headers = tuple((str(name), str(value)) for name, value in headers_raw.items())
    return Route(pattern=pattern, file=_string(raw, "file", "", where), headers=headers)


def _parse_module(raw: Any, index: int) -> WorkerModule:
    where = f"workers.modules[{index}]"
    if not isinstance(raw, Mapping) or "name" not in raw or "path" not in raw:
        msg = f"'{where}' requires 'name' and 'path'"
        raise ConfigurationError(msg)
    return WorkerModule(
        name=_string(raw, "name", "", where),
        path=_string(raw, "path", "", where),
        type=_string(raw, "type", "module", where),
    )


def parse_config(data: Any) -> KernelConfig:
    """Build a ``KernelConfig`` from decoded JSON.

    Raises ``ConfigurationError`` if a present field has the wrong type.
    """
    if not isinstance(data, Mapping):
        msg = f"Configuration must be a JSON object, got {type(data).__name__}"
        raise ConfigurationError(msg)

    ns = _section(data, "namespace")
    namespace = NamespaceConfig(
        root=_string(ns, "root", "/", "namespace"),
        mounts=tuple(
            _parse_mount(raw, i) for i, raw in enumerate(_list(ns, "mounts", "namespace"))
        ),
    )

    kn = _section(data, "kernel")
    patterns = _list(kn, "interceptPatterns", "kernel") if "interceptPatterns" in kn else ["/*"]
    if not all(isinstance(p, str) for p in patterns):
        msg = "'kernel.interceptPatterns' must be a list of strings"
        raise ConfigurationError(msg)
    substitute = kn.get("substitutePlaceholders", False)
    if not isinstance(substitute, bool):
        msg = "'kernel.substitutePlaceholders' must be a boolean"
        raise ConfigurationError(msg)
    kernel = KernelSettings(
        version=_string(kn, "version", __version__, "kernel"),
        caching_strategy=_string(kn, "cachingStrategy", CACHE_FIRST, "kernel"),
        intercept_patterns=tuple(patterns),
        substitute_placeholders=substitute,
    )

    wk = _section(data, "workers")
    enabled = wk.get("enabled", True)
    if not isinstance(enabled, bool):
        msg = "'workers.enabled' must be a boolean"
        raise ConfigurationError(msg)
    pool_raw = _section(wk, "pool")
    pool = PoolSize(
        min=_int(pool_raw, "min", 1, "workers.pool"),
        max=_int(pool_raw, "max", 4, "workers.pool"),
    )
    if pool.min < 0 or pool.max < pool.min:
        msg = f"'workers.pool' requires 0 <= min <= max, got min={pool.min} max={pool.max}"
        raise ConfigurationError(msg)
    modules = tuple(_parse_module(raw, i) for i, raw in enumerate(_list(wk, "modules", "workers")))
    names = [m.name for m in modules]
    if len(names) != len(set(names)):
        msg = "'workers.modules' names must be unique"
        raise ConfigurationError(msg)
    workers = WorkersConfig(enabled=enabled, pool=pool, modules=modules)

    routes_raw = _section(data, "routes")
    routes = tuple(_parse_route(str(pattern), raw) for pattern, raw in routes_raw.items())

    return KernelConfig(namespace=namespace, kernel=kernel, workers=workers, routes=routes)

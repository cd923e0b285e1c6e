"""page9: a request-interception kernel.

Sits between a client and an origin. Every request is resolved through
exact/wildcard routes, then mount-point translation, then a caching
strategy. Long-running computation is offloaded to worker processes, and a
small control protocol reports status, reloads configuration and clears
the cache.

Basic usage::

    from page9 import Kernel, KernelOptions, Request

    kernel = Kernel(KernelOptions(origin="http://localhost:9000"))
    await kernel.startup()
    response = await kernel.handle(Request.build("GET", "/index.html"))

As an ASGI app::

    page9 run http://localhost:9000 --port 8000
"""

__version__ = "0.1.0"
__all__ = [
    "CacheStorage",
    "ConfigurationError",
    "Kernel",
    "KernelConfig",
    "KernelOptions",
    "NetworkError",
    "Page9Error",
    "Request",
    "Response",
    "WorkerError",
    "WorkerNotFoundError",
    "WorkerPool",
    "WorkerTimeoutError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import page9`` light for spawned worker processes.
    """
    if name == "Kernel":
        from page9.kernel import Kernel

        return Kernel

    if name == "KernelOptions":
        from page9.options import KernelOptions

        return KernelOptions

    if name == "KernelConfig":
        from page9.config import KernelConfig

        return KernelConfig

    if name == "Request":
        from page9.http.request import Request

        return Request

    if name == "Response":
        from page9.http.response import Response

        return Response

    if name == "CacheStorage":
        from page9.cache.storage import CacheStorage

        return CacheStorage

    if name == "WorkerPool":
        from page9.workers.pool import WorkerPool

        return WorkerPool

    if name in (
        "ConfigurationError",
        "NetworkError",
        "Page9Error",
        "WorkerError",
        "WorkerNotFoundError",
        "WorkerTimeoutError",
    ):
        from page9 import errors

        return getattr(errors, name)

    msg = f"module 'page9' has no attribute {name!r}"
    raise AttributeError(msg)

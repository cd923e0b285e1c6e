"""The page9 kernel.

Intercepts every request, resolves it through the route table and the mount
namespace, and falls back to the configured caching strategy::

    request -> interceptPatterns? -> route? -> mount? -> caching strategy

The configuration is held as an immutable ``KernelState`` snapshot. Each
request reads the snapshot once, so a concurrent reload (an atomic reference
swap) never shows a request half of one configuration and half of another.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from page9 import __version__
from page9._internal.asgi import Receive, Scope, Send
from page9.cache.lifecycle import CacheLifecycle
from page9.cache.storage import CacheStorage
from page9.cache.strategies import StrategyContext, network_only, run_strategy
from page9.config import KernelConfig, default_config
from page9.control import ControlHandler, Reply, ReplyChannel
from page9.control import request as control_request
from page9.errors import NetworkError
from page9.http.request import Request
from page9.http.response import Response
from page9.loader import ConfigLoader
from page9.network import Network
from page9.options import KernelOptions
from page9.routing.namespace import Namespace
from page9.routing.route import MountMatch, RouteMatch
from page9.routing.router import RouteTable, compile_pattern, matches_any
from page9.workers.pool import WorkerPool

logger = logging.getLogger("page9.kernel")

ROUTE_NOT_FOUND = "Route not found"
MOUNT_NOT_ACCESSIBLE = "Mount point not accessible"


@dataclass(frozen=True, slots=True)
class KernelState:
    """A configuration compiled for request handling. Never mutated."""

    config: KernelConfig
    routes: RouteTable
    namespace: Namespace
    intercept: tuple[re.Pattern[str], ...]

    @classmethod
    def compile(cls, config: KernelConfig) -> KernelState:
        return cls(
            config=config,
            routes=RouteTable(
                config.routes,
                substitute_placeholders=config.kernel.substitute_placeholders,
            ),
            namespace=Namespace(config.namespace.mounts),
            intercept=tuple(compile_pattern(p) for p in config.kernel.intercept_patterns),
        )

    def intercepts(self, path: str) -> bool:
        return matches_any(path, self.intercept)


class Kernel:
    """The interception kernel. Also an ASGI 3.0 application.

    Usage::

        kernel = Kernel(KernelOptions(origin="http://localhost:9000"))
        await kernel.startup()          # install + activate + worker pool
        response = await kernel.handle(Request.build("GET", "/index.html"))
        status = await kernel.request({"type": "KERNEL_STATUS"})
        result = await kernel.send_to_worker("worker-0", "ECHO", "hi")
        await kernel.shutdown()

    Args:
        options: Runtime options (origin, cache prefix, timeouts).
        storage: Cache storage; pass a shared one to model version upgrades.
        transport: Optional httpx transport for origin fetches.
        pool: Optional worker pool (defaults to one built from *options*).
    """

    __slots__ = (
        "_active",
        "_background",
        "_control",
        "_install_lock",
        "_installed",
        "_lifecycle",
        "_loader",
        "_network",
        "_pool",
        "_state",
        "options",
        "version",
    )

    def __init__(
        self,
        options: KernelOptions | None = None,
        *,
        storage: CacheStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        pool: WorkerPool | None = None,
    ) -> None:
        self.options: KernelOptions = options or KernelOptions()
        self.version: str = __version__
        self._network = Network(
            self.options.origin,
            timeout=self.options.fetch_timeout,
            transport=transport,
        )
        self._loader = ConfigLoader(self._network, self.options.config_path)
        self._lifecycle = CacheLifecycle(
            storage if storage is not None else CacheStorage(),
            self.options.cache_prefix,
            self.version,
        )
        self._pool = pool or WorkerPool(
            timeout=self.options.worker_timeout,
            startup_timeout=self.options.worker_startup_timeout,
        )
        self._control = ControlHandler(self)
        self._state = KernelState.compile(default_config())
        self._background: set[asyncio.Task[Any]] = set()
        self._install_lock = asyncio.Lock()
        self._installed = False
        self._active = False

    # -- Introspection --

    @property
    def config(self) -> KernelConfig:
        """The configuration currently in effect."""
        return self._state.config

    @property
    def state(self) -> KernelState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    @property
    def cache_name(self) -> str:
        return self._lifecycle.name

    @property
    def cache_storage(self) -> CacheStorage:
        return self._lifecycle.storage

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    # -- Lifecycle --

    async def install(self) -> None:
        """Load the configuration (startup)."""
        logger.info("Installing kernel v%s", self.version)
        await self.reload_config()
        self._installed = True

    async def _install_once(self) -> None:
        # Concurrent first requests share a single config fetch
        async with self._install_lock:
            if not self._installed:
                await self.install()

    async def activate(self) -> None:
        """Purge caches left behind by other kernel versions."""
        logger.info("Activating kernel v%s", self.version)
        self._lifecycle.purge_stale()
        self._active = True

    async def startup(self) -> None:
        """Install, activate, then start the worker pool."""
        await self.install()
        await self.activate()
        await self._pool.start(self.config.workers)

    async def shutdown(self) -> None:
        """Stop workers, background revalidations and the HTTP client."""
        await self._pool.close()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._network.aclose()
        self._active = False

    async def reload_config(self) -> KernelConfig:
        """Fetch the configuration and swap it in atomically.

        The worker pool is not rebuilt: workers live for the session.
        """
        config = await self._loader.load()
        self._state = KernelState.compile(config)
        return config

    def clear_cache(self) -> bool:
        """Delete the current-version cache."""
        return self._lifecycle.clear()

    # -- Request pipeline --

    async def handle(self, request: Request) -> Response:
        """Resolve and answer one intercepted request. Never raises for
        network failures; those become error responses.
        """
        if not self._installed:
            await self._install_once()

        state = self._state
        path = request.path
        if not state.intercepts(path):
            return await network_only(request, self._strategy_context())

        route = state.routes.match(path)
        if route is not None:
            return await self._fetch_route(request, state, route)

        mount = state.namespace.resolve(path)
        if mount is not None:
            return await self._fetch_mount(request, mount)

        return await run_strategy(
            state.config.kernel.caching_strategy,
            request,
            self._strategy_context(),
        )

    async def _fetch_route(self, request: Request, state: KernelState, match: RouteMatch) -> Response:
        target = state.routes.target_for(match, request.path)
        try:
            response = await self._network.fetch_request(request, target)
        except NetworkError as exc:
            logger.error("Route request failed: %s", exc)
            return Response(body=ROUTE_NOT_FOUND, status=404)
        if match.route.headers:
            response = response.with_header_overrides(match.route.headers)
        return response

    async def _fetch_mount(self, request: Request, match: MountMatch) -> Response:
        try:
            return await self._network.fetch_request(request, match.translated_path)
        except NetworkError as exc:
            logger.error("Mount request failed: %s", exc)
            return Response(body=MOUNT_NOT_ACCESSIBLE, status=404)

    def _strategy_context(self) -> StrategyContext:
        return StrategyContext(
            cache=self._lifecycle.open(),
            fetch=self._network.fetch_request,
            spawn=self._spawn,
        )

    # -- Background tasks --

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run *coro* fire-and-forget, keeping a reference until it ends."""
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    async def wait_background(self) -> None:
        """Wait for in-flight background work (revalidations, control messages)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -- Control protocol --

    def post_message(self, message: Mapping[str, Any], reply: ReplyChannel) -> None:
        """Deliver a control message; the answer arrives on *reply*."""
        self._spawn(self._control.handle(message, reply))

    async def request(self, message: Mapping[str, Any], *, timeout: float | None = None) -> Reply:
        """Post a control message and await its reply."""
        return await control_request(self, message, timeout=timeout)

    # -- Workers --

    async def send_to_worker(
        self,
        name: str,
        message_type: str,
        payload: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Dispatch to a named worker. See ``WorkerHandle.call``."""
        return await self._pool.send(name, message_type, payload, timeout=timeout)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly (startup/shutdown), then
        delegates HTTP scopes to the request handler.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        from page9.server.handler import handle_request

        await handle_request(scope, receive, send, kernel=self)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Kernel startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

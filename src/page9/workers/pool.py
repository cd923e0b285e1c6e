"""Worker pool: fixed set of isolated worker processes.

At startup the pool spawns exactly ``pool.min`` generic workers
(``worker-0`` .. ``worker-N``) running the built-in handlers, plus one
process per configured worker module. ``pool.max`` is validated but never
used to grow the pool. Workers live for the whole session; there is no
per-worker removal, only ``close()`` for the pool as a whole.

Processes use the ``spawn`` start method so a worker shares no memory with
the kernel or with other workers.
"""

import logging
import multiprocessing
from collections.abc import Iterator
from multiprocessing.connection import Connection
from multiprocessing.context import BaseContext
from typing import Any

import anyio

from page9.config import WorkersConfig
from page9.errors import WorkerError, WorkerNotFoundError
from page9.workers.dispatcher import DEFAULT_TIMEOUT, WorkerHandle
from page9.workers.process import worker_main
from page9.workers.protocol import READY_ID, WorkerReply

logger = logging.getLogger("page9.workers")

BUILTIN_MODULE = "page9.workers.builtin"


def _await_ready(connection: Connection, timeout: float) -> dict[str, Any]:
    """Block until the child's startup handshake arrives (runs in a thread)."""
    if not connection.poll(timeout):
        msg = f"no ready handshake within {timeout}s"
        raise WorkerError(msg)
    try:
        reply = WorkerReply.from_message(connection.recv())
    except (EOFError, OSError) as exc:
        msg = "process exited during startup"
        raise WorkerError(msg) from exc
    if reply.id != READY_ID:
        msg = f"unexpected startup message {reply.id!r}"
        raise WorkerError(msg)
    if reply.error is not None:
        raise WorkerError(reply.error)
    return reply.result or {}


class WorkerPool:
    """Creates and holds the session's worker handles.

    Args:
        timeout: Default dispatch deadline per call, in seconds.
        startup_timeout: Seconds to wait for each worker's handshake.
    """

    __slots__ = ("_context", "_generic", "_handles", "_started", "startup_timeout", "timeout")

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT, startup_timeout: float = 30.0) -> None:
        self.timeout = timeout
        self.startup_timeout = startup_timeout
        self._context: BaseContext = multiprocessing.get_context("spawn")
        self._handles: dict[str, WorkerHandle] = {}
        self._generic: list[str] = []
        self._started = False

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __iter__(self) -> Iterator[WorkerHandle]:
        return iter(list(self._handles.values()))

    @property
    def names(self) -> list[str]:
        """All worker names, generic workers first."""
        return list(self._handles)

    @property
    def generic(self) -> list[str]:
        """Names of the generic pool workers."""
        return list(self._generic)

    async def start(self, config: WorkersConfig) -> None:
        """Spawn the pool described by *config*. Runs once per session."""
        if self._started:
            return
        self._started = True

        if not config.enabled:
            logger.info("Workers disabled")
            return

        logger.info("Initializing worker pool (size: %d)", config.pool.min)
        for index in range(config.pool.min):
            name = f"worker-{index}"
            await self._spawn(name, BUILTIN_MODULE)
            self._generic.append(name)

        for module in config.modules:
            if module.name in self._handles:
                logger.error("Worker name %s is already taken, skipping module", module.name)
                continue
            try:
                await self._spawn(module.name, module.path)
            except WorkerError as exc:
                logger.error("Failed to load worker module %s: %s", module.name, exc)
                continue
            logger.info("Worker module loaded: %s", module.name)

    async def _spawn(self, name: str, module_ref: str) -> WorkerHandle:
        parent, child = self._context.Pipe(duplex=True)
        process = self._context.Process(
            target=worker_main,
            args=(child, module_ref, name),
            name=f"page9-{name}",
            daemon=True,
        )
        await anyio.to_thread.run_sync(process.start)
        child.close()

        try:
            info = await anyio.to_thread.run_sync(_await_ready, parent, self.startup_timeout)
        except WorkerError as exc:
            if process.is_alive():
                process.terminate()
            await anyio.to_thread.run_sync(process.join, 1.0)
            parent.close()
            msg = f"Worker {name} ({module_ref}) failed to start: {exc}"
            raise WorkerError(msg) from exc

        handle = WorkerHandle(name, process, parent, module=module_ref, timeout=self.timeout)
        handle.start()
        self._handles[name] = handle
        logger.info("Worker created: %s (%s)", name, ", ".join(info.get("types", ())))
        return handle

    def get(self, name: str) -> WorkerHandle:
        """Return the handle for *name*. Raises ``WorkerNotFoundError``."""
        handle = self._handles.get(name)
        if handle is None:
            raise WorkerNotFoundError(name)
        return handle

    async def send(
        self,
        name: str,
        message_type: str,
        payload: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Dispatch to the worker called *name* and await its result."""
        return await self.get(name).call(message_type, payload, timeout=timeout)

    async def close(self) -> None:
        """Shut every worker down (end of session)."""
        async with anyio.create_task_group() as tg:
            for handle in self._handles.values():
                tg.start_soon(handle.close)

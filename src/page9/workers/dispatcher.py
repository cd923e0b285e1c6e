"""Correlated request/response dispatch to one worker process.

Each call registers a pending entry keyed by a fresh correlation id, sends
``{type, payload, id}`` and awaits the matching reply. The entry is removed
exactly once, by whichever comes first:

- a reply with the same id (resolve, or reject with the reply's error)
- the deadline (reject with ``WorkerTimeoutError``)
- the caller cancelling its await

On deadline or cancellation the worker is sent ``{type: "CANCEL", id}`` so
a cooperative handler can stop. Replies that arrive after their entry is
gone are discarded.
"""

import asyncio
import logging
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from typing import Any
from uuid import uuid4

import anyio

from page9.errors import WorkerError, WorkerTimeoutError
from page9.workers.protocol import SHUTDOWN, WorkerReply, WorkerRequest, cancel_message

logger = logging.getLogger("page9.workers")

DEFAULT_TIMEOUT = 5.0


@dataclass(slots=True)
class _PendingCall:
    future: asyncio.Future[Any]
    deadline: asyncio.TimerHandle
    message_type: str
    timeout: float


class WorkerHandle:
    """The kernel's side of one worker: channel plus pending-call table.

    Owned by ``WorkerPool``; one handle per worker name.
    """

    __slots__ = (
        "_closed",
        "_connection",
        "_limiter",
        "_listener",
        "_pending",
        "_process",
        "module",
        "name",
        "timeout",
    )

    def __init__(
        self,
        name: str,
        process: BaseProcess,
        connection: Connection,
        *,
        module: str = "",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.name = name
        self.module = module
        self.timeout = timeout
        self._process = process
        self._connection = connection
        self._pending: dict[str, _PendingCall] = {}
        self._listener: asyncio.Task[None] | None = None
        # One blocking recv() per worker; keep it off the shared thread pool
        self._limiter = anyio.CapacityLimiter(1)
        self._closed = False

    def __repr__(self) -> str:
        return f"WorkerHandle({self.name!r}, pending={len(self._pending)}, alive={self.is_alive})"

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_alive(self) -> bool:
        return self._process.is_alive()

    def start(self) -> None:
        """Start listening for replies on the running event loop."""
        if self._listener is None:
            self._listener = asyncio.get_running_loop().create_task(
                self._listen(), name=f"page9-worker-{self.name}"
            )

    async def call(self, message_type: str, payload: Any = None, *, timeout: float | None = None) -> Any:
        """Send a request and await its correlated reply.

        Raises ``WorkerError`` if the worker replies with an error or dies,
        ``WorkerTimeoutError`` if no reply arrives within *timeout* seconds.
        """
        if self._closed:
            msg = f"Worker {self.name} is closed"
            raise WorkerError(msg)
        if self._listener is not None and self._listener.done():
            msg = f"Worker {self.name} exited"
            raise WorkerError(msg)
        self.start()

        limit = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        call_id = uuid4().hex
        future: asyncio.Future[Any] = loop.create_future()
        deadline = loop.call_later(limit, self._expire, call_id)
        self._pending[call_id] = _PendingCall(future, deadline, message_type, limit)

        try:
            self._connection.send(WorkerRequest(message_type, call_id, payload).to_message())
        except Exception as exc:
            self._pending.pop(call_id, None)
            deadline.cancel()
            msg = f"Could not send {message_type} to worker {self.name}: {exc}"
            raise WorkerError(msg) from exc

        try:
            return await future
        except asyncio.CancelledError:
            entry = self._pending.pop(call_id, None)
            if entry is not None:
                entry.deadline.cancel()
                self._cancel_remote(call_id)
            raise

    # -- Reply side --

    async def _listen(self) -> None:
        while True:
            try:
                message = await anyio.to_thread.run_sync(
                    self._connection.recv, abandon_on_cancel=True, limiter=self._limiter
                )
            except (EOFError, OSError):
                break
            self._on_reply(message)

        if not self._closed:
            logger.warning("Worker %s exited unexpectedly", self.name)
        self._fail_all(WorkerError(f"Worker {self.name} exited"))

    def _on_reply(self, message: Any) -> None:
        try:
            reply = WorkerReply.from_message(message)
        except (KeyError, TypeError, AttributeError):
            logger.warning("Worker %s sent a malformed reply: %r", self.name, message)
            return

        entry = self._pending.pop(reply.id, None)
        if entry is None:
            logger.debug("Discarding late reply %s from worker %s", reply.id, self.name)
            return
        entry.deadline.cancel()
        if entry.future.done():
            return
        if reply.error is not None:
            entry.future.set_exception(WorkerError(reply.error))
        else:
            entry.future.set_result(reply.result)

    def _expire(self, call_id: str) -> None:
        entry = self._pending.pop(call_id, None)
        if entry is None:
            return
        logger.warning(
            "Worker %s timed out on %s after %ss", self.name, entry.message_type, entry.timeout
        )
        if not entry.future.done():
            entry.future.set_exception(
                WorkerTimeoutError(self.name, entry.message_type, entry.timeout)
            )
        self._cancel_remote(call_id)

    def _cancel_remote(self, call_id: str) -> None:
        try:
            self._connection.send(cancel_message(call_id))
        except (OSError, ValueError):
            logger.debug("Could not deliver CANCEL %s to worker %s", call_id, self.name)

    def _fail_all(self, exc: WorkerError) -> None:
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            entry.deadline.cancel()
            if not entry.future.done():
                entry.future.set_exception(exc)

    # -- Shutdown --

    async def close(self, timeout: float = 2.0) -> None:
        """Stop the worker process and reject anything still pending."""
        if self._closed:
            return
        self._closed = True
        try:
            self._connection.send({"type": SHUTDOWN})
        except (OSError, ValueError):
            logger.debug("Worker %s pipe already closed", self.name)

        await anyio.to_thread.run_sync(self._process.join, timeout)
        if self._process.is_alive():
            logger.warning("Worker %s did not stop in %ss, terminating", self.name, timeout)
            self._process.terminate()
            await anyio.to_thread.run_sync(self._process.join, timeout)

        if self._listener is not None:
            # The child is gone, so the blocked recv() sees EOF shortly
            await asyncio.wait({self._listener}, timeout=timeout)
            if not self._listener.done():
                self._listener.cancel()
        self._fail_all(WorkerError(f"Worker {self.name} is closed"))
        self._connection.close()

"""Worker process entry point.

Runs inside a ``spawn``-context child process: nothing is shared with the
kernel except the pipe. A reader thread drains the pipe into an inbox so a
``CANCEL`` can arrive while a handler is still running; the main thread
executes handlers one at a time.
"""

import importlib
import importlib.util
import logging
import pickle
import queue
import threading
from collections import OrderedDict
from collections.abc import Callable, Mapping
from functools import partial
from multiprocessing.connection import Connection
from pathlib import Path
from typing import Any, TypeAlias

from page9.errors import WorkerError
from page9.workers.context import TaskCancelled, TaskContext, WorkerState
from page9.workers.protocol import CANCEL, READY_ID, SHUTDOWN, WorkerReply, WorkerRequest

logger = logging.getLogger("page9.workers")

Handler: TypeAlias = Callable[[Any, TaskContext], Any]

# Remember at most this many cancelled ids (cancels can outlive their task)
_MAX_CANCELLED = 1024


def load_handlers(module_ref: str) -> Mapping[str, Handler]:
    """Import a worker module and return its ``HANDLERS`` mapping.

    *module_ref* is a path to a ``.py`` file or a dotted import path.
    Raises ``WorkerError`` if the module has no ``HANDLERS`` mapping.
    """
    if module_ref.endswith(".py"):
        path = Path(module_ref)
        spec = importlib.util.spec_from_file_location(f"page9_worker_{path.stem}", path)
        if spec is None or spec.loader is None:
            msg = f"Cannot load worker module from {module_ref}"
            raise WorkerError(msg)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(module_ref)

    handlers = getattr(module, "HANDLERS", None)
    if not isinstance(handlers, Mapping):
        msg = f"Worker module {module_ref} does not define a HANDLERS mapping"
        raise WorkerError(msg)
    return handlers


class WorkerLoop:
    """Message loop of one worker process."""

    def __init__(self, connection: Connection, handlers: Mapping[str, Handler], name: str) -> None:
        self._connection = connection
        self._handlers = handlers
        self._state = WorkerState(name=name)
        self._inbox: queue.Queue[dict[str, Any] | None] = queue.Queue()
        self._cancelled: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def run(self) -> None:
        reader = threading.Thread(target=self._read, name=f"{self._state.name}-reader", daemon=True)
        reader.start()
        while True:
            message = self._inbox.get()
            if message is None:
                break
            if not self._dispatch(message):
                break

    # -- Reader thread --

    def _read(self) -> None:
        while True:
            try:
                message = self._connection.recv()
            except (EOFError, OSError):
                self._inbox.put(None)
                return
            message_type = message.get("type")
            if message_type == CANCEL:
                self._cancel(str(message.get("id")))
            elif message_type == SHUTDOWN:
                self._inbox.put(None)
                return
            else:
                self._inbox.put(message)

    def _cancel(self, task_id: str) -> None:
        with self._lock:
            self._cancelled[task_id] = None
            while len(self._cancelled) > _MAX_CANCELLED:
                self._cancelled.popitem(last=False)

    # -- Main thread --

    def _is_cancelled(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._cancelled

    def _forget(self, task_id: str) -> None:
        with self._lock:
            self._cancelled.pop(task_id, None)

    def _dispatch(self, message: dict[str, Any]) -> bool:
        """Run one request. Returns False once the pipe is gone."""
        try:
            request = WorkerRequest.from_message(message)
        except KeyError:
            logger.warning("Worker %s dropped malformed message", self._state.name)
            return True

        if self._is_cancelled(request.id):
            self._forget(request.id)
            return True

        handler = self._handlers.get(request.type)
        if handler is None:
            reply = WorkerReply(request.id, error=f"Unknown message type: {request.type}")
        else:
            ctx = TaskContext(
                task_id=request.id,
                state=self._state,
                is_cancelled=partial(self._is_cancelled, request.id),
            )
            try:
                reply = WorkerReply(request.id, result=handler(request.payload, ctx))
            except TaskCancelled:
                self._forget(request.id)
                return True
            except Exception as exc:
                reply = WorkerReply(request.id, error=str(exc) or type(exc).__name__)

        if self._is_cancelled(request.id):
            # Abandoned while running; nobody is waiting for the answer
            self._forget(request.id)
            return True

        try:
            self._connection.send(reply.to_message())
        except (OSError, ValueError):
            return False
        except (TypeError, AttributeError, pickle.PicklingError) as exc:
            # Pickling happens before any bytes hit the pipe, so it is still usable
            logger.warning("Worker %s cannot send result of %s: %s", self._state.name, request.type, exc)
            error = WorkerReply(request.id, error=f"Cannot send result of {request.type}: {exc}")
            try:
                self._connection.send(error.to_message())
            except (OSError, ValueError):
                return False
        return True


def worker_main(connection: Connection, module_ref: str, name: str) -> None:
    """Child process target: load handlers, handshake, serve until EOF."""
    try:
        handlers = load_handlers(module_ref)
    except Exception as exc:
        connection.send(WorkerReply(READY_ID, error=f"{type(exc).__name__}: {exc}").to_message())
        connection.close()
        return

    connection.send(
        WorkerReply(READY_ID, result={"ready": True, "name": name, "types": sorted(handlers)}).to_message()
    )
    try:
        WorkerLoop(connection, handlers, name).run()
    finally:
        connection.close()

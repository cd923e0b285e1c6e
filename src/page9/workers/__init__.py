"""Worker subsystem: isolated processes for offloaded computation.

Independent of the request pipeline: the hosting session calls workers
explicitly through ``Kernel.send_to_worker()`` or ``WorkerPool.send()``.
"""

from page9.workers.context import TaskCancelled, TaskContext, WorkerState
from page9.workers.dispatcher import DEFAULT_TIMEOUT, WorkerHandle
from page9.workers.pool import BUILTIN_MODULE, WorkerPool
from page9.workers.protocol import WorkerReply, WorkerRequest

__all__ = [
    "BUILTIN_MODULE",
    "DEFAULT_TIMEOUT",
    "TaskCancelled",
    "TaskContext",
    "WorkerHandle",
    "WorkerPool",
    "WorkerReply",
    "WorkerRequest",
    "WorkerState",
]

"""Per-process worker state and per-task context passed to handlers."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field


class TaskCancelled(Exception):
    """Raised inside a handler when the kernel has abandoned its task.

    The worker loop swallows it and sends no reply.
    """


@dataclass(slots=True)
class WorkerState:
    """Mutable state owned by one worker process (never shared)."""

    name: str
    tasks_processed: int = 0
    started: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started


@dataclass(frozen=True, slots=True)
class TaskContext:
    """Handed to every handler call.

    Long-running handlers should call ``check_cancelled()`` periodically.
    """

    task_id: str
    state: WorkerState
    is_cancelled: Callable[[], bool] = lambda: False

    def check_cancelled(self) -> None:
        if self.is_cancelled():
            raise TaskCancelled(self.task_id)

"""Built-in worker handlers.

Every generic pool worker runs this module. A custom worker module follows
the same shape: a module-level ``HANDLERS`` mapping of message type to
``handler(payload, ctx) -> result``. Raise to report an error; the message
becomes the reply's ``error``.

==========  =======================================================
``ECHO``    ``{echo: payload, timestamp: <ms since epoch>}``
``COMPUTE`` ``{operation, input, output, taskNumber}`` for square,
            cube, fibonacci, factorial
``HASH``    ``{text, algorithm, hash}`` for simple, djb2
``STATUS``  ``{active, tasksProcessed, uptime}``
==========  =======================================================
"""

import time
from collections.abc import Callable
from typing import Any

from page9.workers.context import TaskContext

# Iterations between cooperative cancellation checks
_CHECK_EVERY = 10_000


def _to_int32(value: int) -> int:
    """Wrap to a signed 32-bit integer."""
    return ((value + 0x80000000) % 0x100000000) - 0x80000000


def _hex(value: int) -> str:
    return format(value, "x")


def fibonacci(n: int, ctx: TaskContext | None = None) -> int:
    """Iterative Fibonacci."""
    if n <= 1:
        return n
    a, b = 0, 1
    for i in range(2, n + 1):
        a, b = b, a + b
        if ctx is not None and i % _CHECK_EVERY == 0:
            ctx.check_cancelled()
    return b


def factorial(n: int, ctx: TaskContext | None = None) -> int:
    if n < 0:
        msg = "Factorial of negative number"
        raise ValueError(msg)
    result = 1
    for i in range(2, n + 1):
        result *= i
        if ctx is not None and i % _CHECK_EVERY == 0:
            ctx.check_cancelled()
    return result


def simple_hash(text: str) -> str:
    """Java-style ``h * 31 + c`` string hash, kept to 32 bits."""
    value = 0
    for char in text:
        value = _to_int32((value << 5) - value + ord(char))
    return _hex(value)


def djb2_hash(text: str) -> str:
    """djb2 (``h * 33 + c``) where only the shifted term wraps to 32 bits."""
    value = 5381
    for char in text:
        value = _to_int32(_to_int32(value) << 5) + value + ord(char)
    return _hex(value)


_OPERATIONS: dict[str, Callable[[Any, TaskContext], Any]] = {
    "square": lambda value, ctx: value * value,
    "cube": lambda value, ctx: value * value * value,
    "fibonacci": fibonacci,
    "factorial": factorial,
}

_HASHES: dict[str, Callable[[str], str]] = {
    "simple": simple_hash,
    "djb2": djb2_hash,
}


def echo(payload: Any, ctx: TaskContext) -> dict[str, Any]:
    return {"echo": payload, "timestamp": int(time.time() * 1000)}


def compute(payload: Any, ctx: TaskContext) -> dict[str, Any]:
    ctx.state.tasks_processed += 1
    if not isinstance(payload, dict):
        msg = "COMPUTE payload must be an object with 'operation' and 'value'"
        raise TypeError(msg)
    operation = payload.get("operation")
    value = payload.get("value")
    handler = _OPERATIONS.get(operation)  # type: ignore[arg-type]
    if handler is None:
        msg = f"Unknown operation: {operation}"
        raise ValueError(msg)
    return {
        "operation": operation,
        "input": value,
        "output": handler(value, ctx),
        "taskNumber": ctx.state.tasks_processed,
    }


def hash_text(payload: Any, ctx: TaskContext) -> dict[str, Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
        msg = "HASH payload must be an object with a 'text' string"
        raise TypeError(msg)
    text = payload["text"]
    algorithm = payload.get("algorithm")
    hasher = _HASHES.get(algorithm, simple_hash)  # type: ignore[arg-type]
    return {"text": text, "algorithm": algorithm, "hash": hasher(text)}


def status(payload: Any, ctx: TaskContext) -> dict[str, Any]:
    return {
        "active": True,
        "tasksProcessed": ctx.state.tasks_processed,
        "uptime": "running",
    }


HANDLERS: dict[str, Callable[[Any, TaskContext], Any]] = {
    "ECHO": echo,
    "COMPUTE": compute,
    "HASH": hash_text,
    "STATUS": status,
}

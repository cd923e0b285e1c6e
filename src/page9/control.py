"""Control protocol: status, reload and clear commands.

The hosting session posts a message together with a one-shot reply channel
(an anyio memory-object send stream). Every message gets exactly one reply:

==================  =====================================
``KERNEL_STATUS``   ``{version, config, active: True}``
``RELOAD_CONFIG``   ``{success: True}`` once the new config is live
``CLEAR_CACHE``     ``{success: True}`` once the cache is gone
anything else       ``{success: False, error: "Unknown message type: ..."}``
==================  =====================================

Unknown types get an explicit error reply so a caller waiting on the
channel never hangs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

import anyio
from anyio.streams.memory import MemoryObjectSendStream

if TYPE_CHECKING:
    from page9.kernel import Kernel

logger = logging.getLogger("page9.control")

KERNEL_STATUS = "KERNEL_STATUS"
RELOAD_CONFIG = "RELOAD_CONFIG"
CLEAR_CACHE = "CLEAR_CACHE"

Reply: TypeAlias = dict[str, Any]
ReplyChannel: TypeAlias = MemoryObjectSendStream[Reply]


class ControlHandler:
    """Answers control messages for one kernel."""

    __slots__ = ("_commands", "_kernel")

    def __init__(self, kernel: Kernel) -> None:
        self._kernel = kernel
        self._commands: dict[str, Callable[[], Awaitable[Reply]]] = {
            KERNEL_STATUS: self._status,
            RELOAD_CONFIG: self._reload,
            CLEAR_CACHE: self._clear,
        }

    @property
    def commands(self) -> frozenset[str]:
        return frozenset(self._commands)

    async def handle(self, message: Mapping[str, Any], reply: ReplyChannel) -> None:
        """Answer *message* on *reply*, then close the channel."""
        message_type = message.get("type") if isinstance(message, Mapping) else None
        async with reply:
            command = self._commands.get(message_type) if isinstance(message_type, str) else None
            if command is None:
                logger.warning("Unknown message type: %s", message_type)
                answer: Reply = {
                    "success": False,
                    "error": f"Unknown message type: {message_type}",
                }
            else:
                answer = await command()
            try:
                await reply.send(answer)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug("Reply channel for %s closed before the answer was sent", message_type)

    async def _status(self) -> Reply:
        return {
            "version": self._kernel.version,
            "config": self._kernel.config.to_dict(),
            "active": True,
        }

    async def _reload(self) -> Reply:
        await self._kernel.reload_config()
        return {"success": True}

    async def _clear(self) -> Reply:
        self._kernel.clear_cache()
        return {"success": True}


async def request(kernel: Kernel, message: Mapping[str, Any], *, timeout: float | None = None) -> Reply:
    """Post *message* to *kernel* and wait for its reply.

    Raises ``TimeoutError`` if *timeout* elapses first.
    """
    send, receive = anyio.create_memory_object_stream[Reply](1)
    kernel.post_message(message, send)
    async with receive:
        with anyio.fail_after(timeout):
            return await receive.receive()

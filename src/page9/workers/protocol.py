"""Worker wire protocol.

Request (kernel -> worker)::

    {"type": "COMPUTE", "payload": {...}, "id": "<correlation id>"}

Reply (worker -> kernel)::

    {"id": "<correlation id>", "result": ...}
    {"id": "<correlation id>", "error": "message"}

The ``id`` round-trips unchanged and is the only correlation mechanism.
Messages travel as plain dicts over a ``multiprocessing`` pipe.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Kernel -> worker control types (never dispatched to handlers)
CANCEL = "CANCEL"
SHUTDOWN = "SHUTDOWN"

# Correlation id of the startup handshake
READY_ID = "__ready__"


@dataclass(frozen=True, slots=True)
class WorkerRequest:
    type: str
    id: str
    payload: Any = None

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload, "id": self.id}

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> WorkerRequest:
        return cls(type=str(message["type"]), id=str(message["id"]), payload=message.get("payload"))


@dataclass(frozen=True, slots=True)
class WorkerReply:
    id: str
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_message(self) -> dict[str, Any]:
        if self.error is not None:
            return {"id": self.id, "error": self.error}
        return {"id": self.id, "result": self.result}

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> WorkerReply:
        error = message.get("error")
        return cls(
            id=str(message["id"]),
            result=message.get("result"),
            error=None if error is None else str(error),
        )


def cancel_message(call_id: str) -> dict[str, Any]:
    return {"type": CANCEL, "id": call_id}

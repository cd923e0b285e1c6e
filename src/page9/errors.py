"""page9 exception hierarchy.

Shared across the loader, kernel, cache engine and worker subsystem so every
module raises and catches the same types.
"""


class Page9Error(Exception):
    """Base for all page9-specific errors."""


class ConfigurationError(Page9Error):
    """Raised when the configuration resource has an invalid shape.

    Never escapes ``ConfigLoader.load()``; the loader falls back to the
    built-in default instead.
    """


class NetworkError(Page9Error):
    """Raised when the origin cannot be reached (transport-level failure).

    Non-2xx responses are *not* network errors; they are ordinary responses.
    """

    def __init__(self, url: str, detail: str = "") -> None:
        self.url = url
        self.detail = detail
        message = f"Fetch failed for {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class WorkerError(Page9Error):
    """Raised when a worker reports an error or dies mid-call."""


class WorkerTimeoutError(WorkerError):
    """Raised when a worker does not reply before the dispatch deadline."""

    def __init__(self, worker: str, message_type: str, timeout: float) -> None:
        self.worker = worker
        self.message_type = message_type
        self.timeout = timeout
        super().__init__(f"Worker timeout: {worker} did not answer {message_type} within {timeout}s")


class WorkerNotFoundError(WorkerError):
    """Raised when dispatching to a worker name the pool does not hold."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Worker {name} not found")

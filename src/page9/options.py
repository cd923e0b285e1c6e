"""Runtime options for a kernel instance.

KernelOptions is a frozen dataclass, immutable after creation,
IDE-autocompletable, no string-key dict lookups. It describes *where* the
kernel runs; the configuration resource (``page9.config``) describes *what*
it does and can be reloaded at any time.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class KernelOptions:
    """Kernel runtime options. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        options = KernelOptions(origin="http://localhost:9000", port=3000)
    """

    # Origin the kernel fetches from (every network fetch targets this host)
    origin: str = "http://127.0.0.1:8080"

    # Configuration resource, fetched from the origin
    config_path: str = "/page9.config.json"

    # Cache namespace prefix; the kernel version is appended as "-v<version>"
    cache_prefix: str = "page9-kernel"

    # Worker dispatch deadline in seconds
    worker_timeout: float = 5.0

    # Seconds to wait for a spawned worker's ready handshake
    worker_startup_timeout: float = 30.0

    # HTTP surface for the control protocol (POST a JSON message)
    control_path: str = "/__page9__/control"

    # Network
    fetch_timeout: float = 30.0

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"

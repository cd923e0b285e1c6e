"""Configuration loading with fallback.

``ConfigLoader.load()`` never raises: a missing resource, a non-2xx status,
an unreachable origin or malformed content all log a warning and yield the
built-in default configuration.
"""

import json
import logging
from pathlib import Path

from page9.config import KernelConfig, default_config, parse_config
from page9.errors import ConfigurationError, NetworkError
from page9.network import Network

logger = logging.getLogger("page9.config")


class ConfigLoader:
    """Fetches the configuration resource from the origin."""

    __slots__ = ("_network", "_path")

    def __init__(self, network: Network, path: str = "/page9.config.json") -> None:
        self._network = network
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    async def load(self) -> KernelConfig:
        """Fetch and parse the configuration, or return the default."""
        try:
            response = await self._network.fetch("GET", self._path)
        except NetworkError as exc:
            logger.warning("Failed to load config: %s; using defaults", exc)
            return default_config()

        if not response.ok:
            logger.warning(
                "No config found at %s (status %d), using defaults", self._path, response.status
            )
            return default_config()

        try:
            config = parse_config(json.loads(response.body_bytes))
        except (ValueError, ConfigurationError) as exc:
            logger.warning("Invalid config at %s: %s; using defaults", self._path, exc)
            return default_config()

        logger.info(
            "Configuration loaded: %d route(s), %d mount(s), strategy %s",
            len(config.routes),
            len(config.namespace.mounts),
            config.kernel.caching_strategy,
        )
        return config


def load_config_file(path: str | Path) -> KernelConfig:
    """Parse a configuration file from disk.

    Unlike ``ConfigLoader.load()`` this is strict: it raises
    ``ConfigurationError`` for malformed content and ``OSError`` when the
    file cannot be read. Used by ``page9 check``.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError as exc:
        msg = f"{path}: invalid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    return parse_config(data)

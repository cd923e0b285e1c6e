"""Tests for page9.loader: config fetching with default fallback."""

import json
from pathlib import Path

import httpx
import pytest

from page9.config import NETWORK_FIRST, default_config
from page9.errors import ConfigurationError
from page9.loader import ConfigLoader, load_config_file
from page9.network import Network
from page9.testing import FakeOrigin


def loader_for(origin: FakeOrigin) -> ConfigLoader:
    return ConfigLoader(Network("http://origin.test", transport=origin.transport))


class TestConfigLoader:
    async def test_loads_config(self) -> None:
        origin = FakeOrigin()
        origin.serve_config({"kernel": {"cachingStrategy": "network-first"}})
        config = await loader_for(origin).load()
        assert config.kernel.caching_strategy == NETWORK_FIRST
        assert origin.hits("/page9.config.json") == 1

    async def test_missing_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        config = await loader_for(FakeOrigin()).load()
        assert config == default_config()
        assert "using defaults" in caplog.text

    async def test_server_error_falls_back(self) -> None:
        origin = FakeOrigin({"/page9.config.json": lambda request: httpx.Response(500, text="boom")})
        assert await loader_for(origin).load() == default_config()

    async def test_offline_falls_back(self) -> None:
        origin = FakeOrigin()
        origin.offline = True
        assert await loader_for(origin).load() == default_config()

    async def test_malformed_json_falls_back(self) -> None:
        origin = FakeOrigin({"/page9.config.json": "{not json"})
        assert await loader_for(origin).load() == default_config()

    async def test_invalid_shape_falls_back(self) -> None:
        origin = FakeOrigin()
        origin.serve_config({"namespace": {"mounts": "nope"}})
        assert await loader_for(origin).load() == default_config()

    async def test_custom_path(self) -> None:
        origin = FakeOrigin()
        origin.serve_config({"kernel": {"cachingStrategy": "network-first"}}, path="/conf/k.json")
        loader = ConfigLoader(Network("http://origin.test", transport=origin.transport), "/conf/k.json")
        assert (await loader.load()).kernel.caching_strategy == NETWORK_FIRST


class TestLoadConfigFile:
    def test_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "page9.config.json"
        path.write_text(json.dumps({"routes": {"/a": "/b"}}))
        assert len(load_config_file(path).routes) == 1

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "page9.config.json"
        path.write_text("{")
        with pytest.raises(ConfigurationError, match="invalid JSON"):
            load_config_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_config_file(tmp_path / "absent.json")

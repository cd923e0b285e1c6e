"""Shared fixtures: an in-memory origin and kernels wired to it."""

from collections.abc import AsyncIterator
from typing import Any

import pytest

from page9.cache.storage import CacheStorage
from page9.kernel import Kernel
from page9.options import KernelOptions
from page9.testing import FakeOrigin

ORIGIN = "http://origin.test"

# Workers are exercised in test_workers.py; keep the pipeline tests process-free
NO_WORKERS: dict[str, Any] = {"workers": {"enabled": False}}


def make_kernel(origin: FakeOrigin, storage: CacheStorage | None = None, **options: Any) -> Kernel:
    return Kernel(
        KernelOptions(origin=ORIGIN, **options),
        storage=storage,
        transport=origin.transport,
    )


@pytest.fixture
def origin() -> FakeOrigin:
    o = FakeOrigin()
    o.serve_config(NO_WORKERS)
    return o


@pytest.fixture
async def kernel(origin: FakeOrigin) -> AsyncIterator[Kernel]:
    k = make_kernel(origin)
    yield k
    await k.shutdown()

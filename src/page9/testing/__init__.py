"""Test utilities for page9 kernels.

Provides an ASGI test client and an in-memory origin::

    from page9.testing import FakeOrigin, TestClient
"""

from page9.testing.client import TestClient
from page9.testing.origin import FakeOrigin

__all__ = ["FakeOrigin", "TestClient"]

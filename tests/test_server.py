"""Tests for page9.server: ASGI handling and the control endpoint."""

from typing import Any

import pytest

from page9.http.response import Response
from page9.kernel import Kernel
from page9.server.sender import send_response
from page9.testing import FakeOrigin, TestClient

from conftest import make_kernel


async def capture(response: Response, *, head: bool = False) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await send_response(response, send, head=head)
    return sent


class TestSender:
    async def test_basic(self) -> None:
        start, body = await capture(Response("hello").with_header("X-A", "1"))
        assert start["status"] == 200
        assert (b"content-type", b"text/plain; charset=utf-8") in start["headers"]
        assert (b"x-a", b"1") in start["headers"]
        assert (b"content-length", b"5") in start["headers"]
        assert body["body"] == b"hello"

    async def test_no_body_statuses(self) -> None:
        start, body = await capture(Response("ignored", status=304))
        assert (b"content-length", b"0") in start["headers"]
        assert body["body"] == b""

    async def test_head(self) -> None:
        start, body = await capture(Response("hello"), head=True)
        assert (b"content-length", b"5") in start["headers"]
        assert body["body"] == b""


class TestControlEndpoint:
    async def test_status(self, origin: FakeOrigin) -> None:
        async with TestClient(make_kernel(origin)) as client:
            response = await client.control({"type": "KERNEL_STATUS"})
        assert response.status == 200
        assert response.content_type == "application/json"
        assert response.json()["active"] is True

    async def test_clear(self, origin: FakeOrigin) -> None:
        origin.files["/a"] = "A"
        kernel = make_kernel(origin)
        async with TestClient(kernel) as client:
            await client.get("/a")
            response = await client.control({"type": "CLEAR_CACHE"})
            assert response.json() == {"success": True}
            await client.get("/a")
        assert origin.hits("/a") == 2

    async def test_unknown_type(self, origin: FakeOrigin) -> None:
        async with TestClient(make_kernel(origin)) as client:
            response = await client.control({"type": "NOPE"})
        assert response.status == 400
        assert response.json()["error"] == "Unknown message type: NOPE"

    async def test_get_not_allowed(self, origin: FakeOrigin) -> None:
        async with TestClient(make_kernel(origin)) as client:
            response = await client.get("/__page9__/control")
        assert response.status == 405
        assert response.header("allow") == "POST"

    async def test_invalid_json(self, origin: FakeOrigin) -> None:
        async with TestClient(make_kernel(origin)) as client:
            response = await client.post("/__page9__/control", body=b"{nope")
        assert response.status == 400
        assert response.json()["error"] == "Invalid JSON"

    async def test_non_object(self, origin: FakeOrigin) -> None:
        async with TestClient(make_kernel(origin)) as client:
            response = await client.post("/__page9__/control", json=["KERNEL_STATUS"])
        assert response.status == 400

    async def test_custom_control_path(self, origin: FakeOrigin) -> None:
        kernel = make_kernel(origin, control_path="/_ctl")
        async with TestClient(kernel) as client:
            response = await client.post("/_ctl", json={"type": "KERNEL_STATUS"})
        assert response.status == 200


class TestHandler:
    async def test_query_string_reaches_origin(self, origin: FakeOrigin) -> None:
        origin.files["/search"] = "results"
        async with TestClient(make_kernel(origin)) as client:
            response = await client.get("/search?q=kernel")
        assert response.text == "results"
        assert origin.requests[-1].url.params["q"] == "kernel"

    async def test_unexpected_error_is_500(
        self, origin: FakeOrigin, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        kernel = make_kernel(origin)

        async def explode(request: object) -> Response:
            raise RuntimeError("boom")

        async with TestClient(kernel) as client:
            monkeypatch.setattr(Kernel, "handle", lambda self, request: explode(request))
            response = await client.get("/a")
        assert response.status == 500
        assert "Unhandled error" in caplog.text

    async def test_non_http_scope_ignored(self, kernel: Kernel) -> None:
        async def receive() -> dict[str, Any]:
            return {}

        async def send(message: dict[str, Any]) -> None:
            raise AssertionError("nothing should be sent")

        await kernel({"type": "websocket"}, receive, send)

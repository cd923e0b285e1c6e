"""Tests for page9.network: origin fetches over httpx."""

import httpx
import pytest

from page9.errors import NetworkError
from page9.http.request import Request
from page9.network import Network


def echo_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        201,
        content=request.content or request.url.path.encode(),
        headers={
            "content-type": "text/x-echo",
            "x-method": request.method,
            "x-accept": request.headers.get("accept", ""),
            "connection": "close",
        },
    )


class TestNetwork:
    async def test_fetch_builds_response(self) -> None:
        network = Network("http://origin.test/", transport=httpx.MockTransport(echo_handler))
        response = await network.fetch("GET", "/hello", headers=[("Accept", "text/plain")])
        await network.aclose()

        assert network.origin == "http://origin.test"
        assert response.status == 201
        assert response.text == "/hello"
        assert response.content_type == "text/x-echo"
        assert response.header("x-method") == "GET"
        assert response.header("x-accept") == "text/plain"
        assert response.header("connection") is None
        assert response.header("content-length") is None

    async def test_fetch_request_forwards_body(self) -> None:
        network = Network("http://origin.test", transport=httpx.MockTransport(echo_handler))
        request = Request.build("POST", "/submit", body=b"payload", headers={"Host": "client.test"})
        response = await network.fetch_request(request)
        await network.aclose()
        assert response.text == "payload"
        assert response.header("x-method") == "POST"

    async def test_fetch_request_redirected(self) -> None:
        network = Network("http://origin.test", transport=httpx.MockTransport(echo_handler))
        response = await network.fetch_request(Request.build("GET", "/virtual/a"), "/physical/a")
        await network.aclose()
        assert response.text == "/physical/a"

    async def test_error_status_is_a_response(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        network = Network("http://origin.test", transport=transport)
        response = await network.fetch("GET", "/x")
        await network.aclose()
        assert response.status == 500
        assert not response.ok

    async def test_transport_failure_raises(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        network = Network("http://origin.test", transport=httpx.MockTransport(fail))
        with pytest.raises(NetworkError) as exc_info:
            await network.fetch("GET", "/x")
        await network.aclose()
        assert exc_info.value.url == "/x"

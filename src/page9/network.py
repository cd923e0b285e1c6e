"""Origin fetches over httpx.

Every network fetch the kernel performs goes through ``Network.fetch()``.
Transport failures raise ``NetworkError``; any HTTP status, including
4xx/5xx, comes back as an ordinary ``Response``.
"""

import logging
from collections.abc import Iterable

import httpx

from page9.errors import NetworkError
from page9.http.headers import HOP_BY_HOP
from page9.http.request import Request
from page9.http.response import Response

logger = logging.getLogger("page9.network")

# Request headers the client sets itself for the origin hop
_REQUEST_DROP = frozenset({"host", "content-length"})

# httpx decodes the body, so length and encoding no longer describe it
_RESPONSE_DROP = HOP_BY_HOP | {"content-length", "content-encoding", "content-type"}


class Network:
    """Async fetcher bound to one origin.

    Args:
        origin: Base URL every relative fetch target resolves against.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    __slots__ = ("_client", "_origin")

    def __init__(
        self,
        origin: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._origin = origin.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._origin,
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    @property
    def origin(self) -> str:
        return self._origin

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        headers: Iterable[tuple[str, str]] = (),
        body: bytes = b"",
    ) -> Response:
        """Fetch *url* (origin-relative) and return the response.

        Raises ``NetworkError`` when the origin cannot be reached.
        """
        forwarded = [(name, value) for name, value in headers if name.lower() not in _REQUEST_DROP]
        try:
            upstream = await self._client.request(
                method,
                url,
                headers=forwarded,
                content=body or None,
            )
        except httpx.HTTPError as exc:
            logger.debug("Fetch %s %s failed: %s", method, url, exc)
            raise NetworkError(url, str(exc) or type(exc).__name__) from exc

        return Response(
            body=upstream.content,
            status=upstream.status_code,
            content_type=upstream.headers.get("content-type", "application/octet-stream"),
            headers=tuple(
                (name, value)
                for name, value in upstream.headers.multi_items()
                if name.lower() not in _RESPONSE_DROP
            ),
        )

    async def fetch_request(self, request: Request, url: str | None = None) -> Response:
        """Fetch on behalf of *request*, optionally redirected to *url*.

        Method, forwardable headers and body come from *request*.
        """
        return await self.fetch(
            request.method,
            url if url is not None else request.url,
            headers=request.headers.forwardable(),
            body=await request.body(),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

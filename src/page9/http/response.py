"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention, which
is what lets the cache hand the same stored Response to many readers.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from page9.http.headers import merge_headers


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set status and
    headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_header_overrides(self, overrides: Mapping[str, str] | tuple[tuple[str, str], ...]) -> Response:
        """Return a new Response where each named header is *set*, not appended.

        ``Content-Type`` overrides update ``content_type`` as well.
        """
        pairs = tuple(overrides.items()) if isinstance(overrides, Mapping) else overrides
        content_type = self.content_type
        rest: list[tuple[str, str]] = []
        for name, value in pairs:
            if name.lower() == "content-type":
                content_type = value
            else:
                rest.append((name, value))
        return replace(
            self,
            content_type=content_type,
            headers=merge_headers(self.headers, rest),
        )

    # -- Body helpers --

    @property
    def ok(self) -> bool:
        """True for 2xx statuses; only these are cached."""
        return 200 <= self.status < 300

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.body_bytes)

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        if name.lower() == "content-type":
            return self.content_type
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


def json_response(data: Any, *, status: int = 200) -> Response:
    """Build a JSON response."""
    return Response(
        body=json_module.dumps(data),
        status=status,
        content_type="application/json",
    )

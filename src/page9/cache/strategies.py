"""Fetch/cache strategies for requests no route or mount handled.

Each strategy is an async function ``(request, ctx) -> Response``. None of
them raise: a network failure always becomes either a cached response or an
explicit 503.

cache-first
    Cached entry if present (no network contact). Otherwise fetch, store a
    copy if ok, return. Network failure -> 503 "Network error".

network-first
    Fetch; store a copy if ok, return. Network failure -> cached entry if
    present, else 503 "Network error and no cache".

stale-while-revalidate
    Cached entry if present, returned immediately while a background fetch
    refreshes it (background failures are logged only). Empty cache -> fetch,
    store if ok, return.

Anything else is treated as network-only.
"""

import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, TypeAlias

from page9.cache.storage import Cache
from page9.config import CACHE_FIRST, NETWORK_FIRST, STALE_WHILE_REVALIDATE
from page9.errors import NetworkError
from page9.http.request import Request
from page9.http.response import Response

logger = logging.getLogger("page9.cache")

NETWORK_ERROR_BODY = "Network error"
NO_CACHE_BODY = "Network error and no cache"

Fetch: TypeAlias = Callable[[Request], Awaitable[Response]]
Spawn: TypeAlias = Callable[[Coroutine[Any, Any, None]], None]
Strategy: TypeAlias = Callable[[Request, "StrategyContext"], Awaitable[Response]]


@dataclass(frozen=True, slots=True)
class StrategyContext:
    """What a strategy needs from the kernel.

    Attributes:
        cache: The current-version cache.
        fetch: Network fetch; raises ``NetworkError`` on transport failure.
        spawn: Schedules a fire-and-forget coroutine (background revalidation).
    """

    cache: Cache
    fetch: Fetch
    spawn: Spawn


def unavailable(body: str = NETWORK_ERROR_BODY) -> Response:
    """The explicit 503 returned when neither network nor cache can answer."""
    return Response(body=body, status=503)


async def _fetch_and_store(request: Request, ctx: StrategyContext) -> Response:
    response = await ctx.fetch(request)
    if response.ok:
        ctx.cache.put(request, response)
    return response


async def cache_first(request: Request, ctx: StrategyContext) -> Response:
    cached = ctx.cache.match(request)
    if cached is not None:
        return cached
    try:
        return await _fetch_and_store(request, ctx)
    except NetworkError as exc:
        logger.error("Fetch failed: %s", exc)
        return unavailable()


async def network_first(request: Request, ctx: StrategyContext) -> Response:
    try:
        return await _fetch_and_store(request, ctx)
    except NetworkError as exc:
        cached = ctx.cache.match(request)
        if cached is not None:
            logger.info("Network unavailable for %s, serving cached copy", request.url)
            return cached
        logger.error("Fetch failed with no cached copy: %s", exc)
        return unavailable(NO_CACHE_BODY)


async def _revalidate(request: Request, ctx: StrategyContext) -> None:
    try:
        await _fetch_and_store(request, ctx)
    except NetworkError as exc:
        logger.warning("Background revalidation failed for %s: %s", request.url, exc)


async def stale_while_revalidate(request: Request, ctx: StrategyContext) -> Response:
    cached = ctx.cache.match(request)
    if cached is not None:
        ctx.spawn(_revalidate(request, ctx))
        return cached
    try:
        return await _fetch_and_store(request, ctx)
    except NetworkError as exc:
        logger.error("Fetch failed: %s", exc)
        return unavailable()


async def network_only(request: Request, ctx: StrategyContext) -> Response:
    try:
        return await ctx.fetch(request)
    except NetworkError as exc:
        logger.error("Fetch failed: %s", exc)
        return unavailable()


STRATEGIES: dict[str, Strategy] = {
    CACHE_FIRST: cache_first,
    NETWORK_FIRST: network_first,
    STALE_WHILE_REVALIDATE: stale_while_revalidate,
}


async def run_strategy(name: str, request: Request, ctx: StrategyContext) -> Response:
    """Run the strategy called *name*; unknown names fetch without caching."""
    strategy = STRATEGIES.get(name, network_only)
    return await strategy(request, ctx)

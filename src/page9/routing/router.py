"""Route table with exact-then-pattern matching.

Routes are compiled once per configuration. Lookup order:

1. Exact key equal to the request path.
2. Wildcard patterns, in declaration order; first match wins.

Ambiguity between patterns is resolved by declaration order on purpose.
"""

import re
from collections.abc import Iterable

from page9.config import Route
from page9.routing.route import RouteMatch

PLACEHOLDER = "{path}"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a wildcard pattern into an anchored regex.

    Every regex metacharacter is escaped first, so ``.``, ``+`` or ``(`` in
    a pattern match only themselves. Each ``*`` then becomes a capturing
    "any sequence" group.

    Examples::

        compile_pattern("/api/*")      # matches "/api/users", "/api/"
        compile_pattern("/v1.0/*.js")  # "." is literal: "/v1x0/a.js" does not match
    """
    parts = [re.escape(part) for part in pattern.split("*")]
    return re.compile("(.*)".join(parts), re.DOTALL)


def matches_any(path: str, patterns: Iterable[re.Pattern[str]]) -> bool:
    """True if *path* fully matches at least one compiled pattern."""
    return any(regex.fullmatch(path) for regex in patterns)


class RouteTable:
    """Compiled route table.

    Usage::

        table = RouteTable(config.routes)
        match = table.match("/api/users")
        if match is not None:
            target = table.target_for(match, "/api/users")
    """

    __slots__ = ("_exact", "_patterns", "_substitute")

    def __init__(self, routes: Iterable[Route], *, substitute_placeholders: bool = False) -> None:
        self._exact: dict[str, Route] = {}
        self._patterns: list[tuple[re.Pattern[str], Route]] = []
        self._substitute = substitute_placeholders
        for route in routes:
            # A repeated key keeps its first declaration, like a JSON object would
            self._exact.setdefault(route.pattern, route)
            self._patterns.append((compile_pattern(route.pattern), route))

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def routes(self) -> list[Route]:
        """Routes in declaration order."""
        return [route for _, route in self._patterns]

    def match(self, path: str) -> RouteMatch | None:
        """Return the route for *path*, or ``None`` when no route applies."""
        route = self._exact.get(path)
        if route is not None:
            return RouteMatch(route=route, exact=True)

        for regex, candidate in self._patterns:
            found = regex.fullmatch(path)
            if found is not None:
                return RouteMatch(route=candidate, captures=found.groups())
        return None

    def target_for(self, match: RouteMatch, path: str) -> str:
        """The fetch target for a matched route.

        ``route.file`` is used literally unless placeholder substitution is
        enabled, in which case ``{path}`` becomes the first wildcard capture
        (or *path* without its leading slash for exact matches).
        """
        target = match.route.file
        if not self._substitute or PLACEHOLDER not in target:
            return target
        value = match.captures[0] if match.captures else path.lstrip("/")
        return target.replace(PLACEHOLDER, value)

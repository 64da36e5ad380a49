"""Compiled route table.

Every route pattern is folded into one alternation regex so a single
``fullmatch`` either rejects the path outright or names the first route
that matches it structurally. Per-route matchers then extract parameters
and settle the method, walking forward from that first hit so the
earliest registered route always wins.
"""

import re
from collections.abc import Callable, Iterable
from typing import Any

from perch.routing.pattern import RoutePattern
from perch.routing.route import Route, RouteMatch


class RouteTable:
    """Route table with a combined fast-reject matcher.

    Usage::

        table = RouteTable()
        table.register(compile_pattern("/users/:id"), {"GET"}, show_user)
        table.freeze()
        match = table.resolve("GET", "/users/42")

    ``resolve`` never mutates the table and is safe to call from any
    number of concurrent requests once frozen.
    """

    __slots__ = ("_allowed_by_signature", "_combined", "_frozen", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._combined: re.Pattern[str] | None = None
        self._allowed_by_signature: dict[str, frozenset[str]] = {}
        self._frozen = False

    def register(
        self,
        pattern: RoutePattern,
        methods: Iterable[str],
        handler: Callable[..., Any],
        scope_id: int = 0,
    ) -> Route:
        """Add a route. Must be called before ``freeze()``."""
        if self._frozen:
            msg = "Cannot register routes after the table is frozen."
            raise RuntimeError(msg)

        route = Route(
            pattern=pattern,
            methods=frozenset(m.upper() for m in methods),
            handler=handler,
            scope_id=scope_id,
        )
        self._routes.append(route)
        return route

    def freeze(self) -> None:
        """Compile the combined matcher. No more routes can be added."""
        if self._frozen:
            return

        if self._routes:
            alternatives = "|".join(
                f"(?P<_{i}>{route.pattern.source})" for i, route in enumerate(self._routes)
            )
            self._combined = re.compile(alternatives)

        allowed: dict[str, set[str]] = {}
        for route in self._routes:
            allowed.setdefault(route.pattern.signature, set()).update(route.methods)
        self._allowed_by_signature = {s: frozenset(m) for s, m in allowed.items()}
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> tuple[Route, ...]:
        """All registered routes, in registration order."""
        return tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def allowed_methods(self, signature: str) -> frozenset[str]:
        """Union of methods registered at the structural path *signature*.

        Templates differing only in parameter names or a trailing slash
        share a signature, so they share one method set.
        """
        return self._allowed_by_signature.get(signature, frozenset())

    def resolve(self, method: str, path: str) -> RouteMatch | None:
        """Match a decoded request path and method.

        Returns ``None`` if no route matches the path structurally.
        Returns a ``RouteMatch`` with ``route=None`` if the path matches
        but no route accepts *method*.
        """
        if not self._frozen:
            msg = "RouteTable.freeze() must be called before resolve()."
            raise RuntimeError(msg)
        if self._combined is None:
            return None

        hit = self._combined.fullmatch(path)
        if hit is None:
            return None

        # Alternatives are tried in order, so nothing before the hit can match
        start = int(hit.lastgroup[1:])  # type: ignore[index]
        first = self._routes[start].pattern
        allowed: set[str] = set()

        for route in self._routes[start:]:
            params = route.pattern.match(path)
            if params is None:
                continue
            if method in route.methods:
                return RouteMatch(
                    route=route,
                    template=route.pattern.template,
                    signature=route.pattern.signature,
                    params=params,
                    allowed=route.methods,
                )
            allowed.update(route.methods)

        return RouteMatch(
            route=None,
            template=first.template,
            signature=first.signature,
            allowed=frozenset(allowed),
        )

"""Route and RouteMatch frozen dataclasses."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from perch.routing.pattern import RoutePattern


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route owned by a ``RouteTable``.

    Created at build time. ``scope_id`` names the scope whose flattened
    pipeline wraps the handler.
    """

    pattern: RoutePattern
    methods: frozenset[str]
    handler: Callable[..., Any]
    scope_id: int = 0

    @property
    def path(self) -> str:
        return self.pattern.template


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a structural match.

    ``route`` is ``None`` when the path matched but no route accepts the
    method; ``allowed`` then holds the union of methods over every route
    whose matcher accepts the path. ``template`` and ``signature`` belong
    to the matched route, or to the first structural match when there is none.
    """

    route: Route | None
    template: str
    signature: str
    params: Mapping[str, str] = field(default_factory=dict)
    allowed: frozenset[str] = frozenset()

    @property
    def method_allowed(self) -> bool:
        return self.route is not None

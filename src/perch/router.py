"""The frozen router configuration and its built-in responders.

``RouterConfig`` is produced by ``RouterBuilder.build()`` and never
changes afterwards. Every concurrent dispatch reads it; none writes it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from perch.config import RouterSettings
from perch.context import RequestInfo
from perch.errors import RouteError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.pipeline import ErrorHandlerEntry, Pipeline
from perch.routing.route import Route
from perch.routing.table import RouteTable

logger = logging.getLogger("perch.dispatch")


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Immutable build-time snapshot used for all dispatch.

    ``pipelines`` is indexed by scope id; ``pipelines[0]`` is the root
    scope, which also wraps the not-found responder.
    """

    table: RouteTable
    pipelines: tuple[Pipeline, ...]
    not_found: Callable[..., Any]
    error_handler: ErrorHandlerEntry
    state: Any = None
    settings: RouterSettings = field(default_factory=RouterSettings)

    @property
    def root(self) -> Pipeline:
        return self.pipelines[0]

    @property
    def routes(self) -> tuple[Route, ...]:
        return self.table.routes

    def pipeline_for(self, route: Route) -> Pipeline:
        return self.pipelines[route.scope_id]


def make_not_found(settings: RouterSettings) -> Callable[[Request], Response]:
    """Build the default 404 responder."""

    def not_found(request: Request) -> Response:
        return Response(body=settings.not_found_body, status=404)

    return not_found


def make_default_error_handler(settings: RouterSettings) -> Callable[[RouteError, RequestInfo], Response]:
    """Build the global error handler installed when the caller supplies none."""

    def default_error_handler(error: RouteError, info: RequestInfo) -> Response:
        logger.error(
            "500 %s %s: %s failed",
            info.method,
            info.path,
            error.phase,
            exc_info=error.cause,
        )
        body = "Internal Server Error"
        if settings.debug:
            body = f"{body}: {error}"
        return Response(body=body, status=500)

    return default_error_handler


def method_not_allowed(allowed: frozenset[str]) -> Response:
    """The fixed 405 response, with an ``Allow`` header."""
    allow_value = ", ".join(sorted(allowed))
    return Response(
        body=f"Method Not Allowed. Allowed methods: {allow_value}",
        status=405,
    ).with_header("Allow", allow_value)


def options_response(allowed: frozenset[str]) -> Response:
    """The synthesized answer to an OPTIONS request."""
    return Response.empty(204).with_header("Allow", ", ".join(sorted(allowed)))


def bad_request(detail: str) -> Response:
    """The local answer to a request whose path cannot be decoded."""
    return Response(body=f"Bad Request: {detail}", status=400)

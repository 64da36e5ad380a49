"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: (Request) -> Response, sync or async
Handler: TypeAlias = Callable[..., Any]

# Error handler: (RouteError) or (RouteError, RequestInfo) -> Response
ErrorHandler: TypeAlias = Callable[..., Any]

# HTTP methods a route can be registered for via ``any()``
ALL_METHODS: tuple[str, ...] = (
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "PATCH",
    "HEAD",
    "OPTIONS",
    "CONNECT",
    "TRACE",
)

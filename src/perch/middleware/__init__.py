"""Middleware: protocol-based pre/post phases, no inheritance required.

A pre-middleware is any callable ``(request) -> Request | None``.
A post-middleware is any callable ``(response) -> Response | None``,
or ``(response, info) -> Response | None`` when registered with
``middleware_post_with_info``.

Built-in middleware:
    RequestTimer -- Access logging and X-Response-Time (pre + post-with-info pair)
"""

from perch.middleware.pipeline import (
    ErrorHandlerEntry,
    MiddlewareEntry,
    MiddlewareKind,
    Pipeline,
)
from perch.middleware.protocol import (
    PostMiddleware,
    PostMiddlewareWithInfo,
    PreMiddleware,
)
from perch.middleware.timing import RequestStart, RequestTimer

__all__ = [
    "ErrorHandlerEntry",
    "MiddlewareEntry",
    "MiddlewareKind",
    "Pipeline",
    "PostMiddleware",
    "PostMiddlewareWithInfo",
    "PreMiddleware",
    "RequestStart",
    "RequestTimer",
]

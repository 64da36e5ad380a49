"""Middleware protocols.

A pre-middleware is any callable matching::

    async def my_pre(request: Request) -> Request | None: ...

A post-middleware is any callable matching one of::

    async def my_post(response: Response) -> Response | None: ...
    async def my_post_with_info(response: Response, info: RequestInfo) -> Response | None: ...

``def`` works as well as ``async def``. Returning ``None`` passes the
input through unchanged. Raising any ``Exception`` short-circuits the
rest of the pipeline into error handling.

No base class required. The router checks the shape, not the lineage.
"""

from collections.abc import Awaitable
from typing import Any, Protocol

from perch.context import RequestInfo
from perch.http.request import Request


class PreMiddleware(Protocol):
    """Protocol for middleware that runs before the handler.

    Accepts both functions and callable objects::

        # Function middleware
        def stamp(request: Request) -> Request:
            request.context.set(time.monotonic(), key="started")
            return request

        # Class middleware
        class RequireToken:
            async def __call__(self, request: Request) -> Request:
                if "authorization" not in request.headers:
                    raise PermissionError("missing token")
                return request
    """

    def __call__(self, request: Request) -> Request | None | Awaitable[Request | None]: ...


class PostMiddleware(Protocol):
    """Protocol for middleware that runs after a successful handler."""

    def __call__(self, response: Any) -> Any: ...


class PostMiddlewareWithInfo(Protocol):
    """Protocol for post-middleware that also reads request metadata::

        def timing(response: Response, info: RequestInfo) -> Response:
            started = info.context.get("started")
            return response.with_header("X-Time", f"{time.monotonic() - started:.3f}")
    """

    def __call__(self, response: Any, info: RequestInfo) -> Any: ...


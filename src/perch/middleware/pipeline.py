"""Flattened middleware pipeline.

Each scope's pre/post middleware and error handler are flattened at
build time into one ``Pipeline``: ancestors' pre-middleware first, the
scope's own post-middleware first. ``run`` drives one request through
it::

    pre (outer -> inner) -> handler -> post (inner -> outer)

Any exception escaping a stage is wrapped in a ``RouteError`` tagged
with that stage. Nothing already done is undone: a failing
pre-middleware skips the handler and every post-middleware, and a
failing post-middleware skips the remaining ones.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from perch._internal.invoke import invoke
from perch.context import RequestInfo
from perch.errors import Phase, RouteError
from perch.http.request import Request
from perch.routing.pattern import RoutePattern


class MiddlewareKind(StrEnum):
    PRE = "pre"
    POST = "post"
    POST_WITH_INFO = "post_with_info"


@dataclass(frozen=True, slots=True)
class MiddlewareEntry:
    """A registered middleware plus its optional path filter.

    ``path`` is compiled against the full request path (scope prefix
    included). ``None`` applies the middleware to every route in scope.
    """

    func: Callable[..., Any]
    kind: MiddlewareKind
    path: RoutePattern | None = None

    def applies(self, path: str) -> bool:
        return self.path is None or self.path.matches(path)


@dataclass(frozen=True, slots=True)
class ErrorHandlerEntry:
    """A scoped or global error handler."""

    func: Callable[..., Any]
    with_info: bool = False

    async def __call__(self, error: RouteError) -> Any:
        if self.with_info:
            return await invoke(self.func, error, error.info)
        return await invoke(self.func, error)


@dataclass(frozen=True, slots=True)
class Pipeline:
    """The frozen middleware chain and error handler for one scope."""

    scope_id: int
    prefix: str
    pre: tuple[MiddlewareEntry, ...]
    post: tuple[MiddlewareEntry, ...]
    error_handler: ErrorHandlerEntry
    data: Mapping[type, Any] = field(default_factory=dict)

    async def run(self, request: Request, handler: Callable[..., Any], path: str) -> Any:
        """Run pre-middleware, the handler and post-middleware.

        *path* is the decoded request path used for middleware path
        filters. Raises ``RouteError`` on the first failure.
        """
        for entry in self.pre:
            if not entry.applies(path):
                continue
            try:
                result = await invoke(entry.func, request)
                if result is not None and not isinstance(result, Request):
                    msg = (
                        f"Pre-middleware {_name(entry.func)} returned "
                        f"{type(result).__name__}, expected Request or None"
                    )
                    raise TypeError(msg)
            except Exception as exc:
                raise RouteError(Phase.PRE, exc, RequestInfo.from_request(request)) from exc
            if result is not None:
                request = result

        try:
            response = await invoke(handler, request)
        except Exception as exc:
            raise RouteError(Phase.HANDLER, exc, RequestInfo.from_request(request)) from exc

        info: RequestInfo | None = None
        for entry in self.post:
            if not entry.applies(path):
                continue
            try:
                if entry.kind is MiddlewareKind.POST_WITH_INFO:
                    if info is None:
                        info = RequestInfo.from_request(request)
                    result = await invoke(entry.func, response, info)
                else:
                    result = await invoke(entry.func, response)
            except Exception as exc:
                raise RouteError(Phase.POST, exc, info or RequestInfo.from_request(request)) from exc
            if result is not None:
                response = result

        return response


def _name(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or type(func).__name__

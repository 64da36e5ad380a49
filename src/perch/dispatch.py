"""Request dispatch: the per-request entry point.

Composes path decoding, route-table lookup, request population, the
scope's middleware pipeline and error handling. Holds no state across
requests beyond the frozen ``RouterConfig`` (and the shared application
state it carries), so concurrent requests never interfere.

Hosting contract::

    service = RouterService(builder.build())

    # once per connection
    handle = service.for_connection(("203.0.113.7", 51234))

    # once per request
    response = await handle(request)
"""

import logging
from collections.abc import Callable
from contextvars import Token
from dataclasses import replace
from typing import Any

from perch._internal.paths import decode_path
from perch.context import RequestContext, request_var
from perch.errors import ProtocolError, RouteError
from perch.http.request import Request
from perch.middleware.pipeline import Pipeline
from perch.router import RouterConfig, bad_request, method_not_allowed, options_response

logger = logging.getLogger("perch.dispatch")


async def dispatch(
    config: RouterConfig,
    request: Request,
    *,
    remote_addr: tuple[str, int] | None = None,
) -> Any:
    """Process a single request through the full pipeline.

    1. Decode the path; failure answers 400 locally.
    2. Resolve; no structural match runs the not-found responder.
    3. Path matched but method didn't: 405 (or the OPTIONS auto-answer).
    4. Populate params, state, scope data and a fresh context.
    5-6. Run pre-middleware, the handler, post-middleware.
    7. On failure, the nearest scope's error handler produces the response.
    """
    try:
        path = decode_path(request.path)
    except ProtocolError as exc:
        logger.debug("400 %s %r: %s", request.method, request.path, exc)
        return bad_request(str(exc))

    match = config.table.resolve(request.method, path)

    if match is None:
        logger.debug("404 %s %s", request.method, path)
        return await _run(config, config.root, request, config.not_found, path, {}, remote_addr)

    if match.route is None:
        if request.method == "OPTIONS" and config.settings.auto_options:
            return options_response(match.allowed)
        logger.debug("405 %s %s (allowed: %s)", request.method, path, sorted(match.allowed))
        return method_not_allowed(match.allowed)

    route = match.route
    return await _run(
        config,
        config.pipeline_for(route),
        request,
        route.handler,
        path,
        match.params,
        remote_addr,
    )


async def _run(
    config: RouterConfig,
    pipeline: Pipeline,
    request: Request,
    handler: Callable[..., Any],
    path: str,
    params: Any,
    remote_addr: tuple[str, int] | None,
) -> Any:
    """Populate *request* and run it through *pipeline*, resolving failures."""
    request = replace(
        request,
        params=params,
        state=config.state,
        context=RequestContext(),
        remote_addr=request.remote_addr or remote_addr,
        _data=pipeline.data,
    )

    token: Token[Request] = request_var.set(request)
    try:
        return await pipeline.run(request, handler, path)
    except RouteError as error:
        logger.debug(
            "%s %s failed in %s phase, handled by scope %r",
            request.method,
            path,
            error.phase,
            pipeline.prefix,
        )
        # A failing error handler propagates to the host
        return await pipeline.error_handler(error)
    finally:
        request_var.reset(token)


class RequestService:
    """Request handler bound to one connection.

    Calling it with a ``Request`` returns an awaitable ``Response``,
    the shape a hosting transport expects.
    """

    __slots__ = ("config", "remote_addr")

    def __init__(self, config: RouterConfig, remote_addr: tuple[str, int] | None = None) -> None:
        self.config = config
        self.remote_addr = remote_addr

    async def __call__(self, request: Request) -> Any:
        return await dispatch(self.config, request, remote_addr=self.remote_addr)

    def __repr__(self) -> str:
        return f"<RequestService remote_addr={self.remote_addr!r}>"


class RouterService:
    """Per-application factory of ``RequestService`` handlers.

    Shares one frozen ``RouterConfig`` between every connection.
    """

    __slots__ = ("config",)

    def __init__(self, config: RouterConfig) -> None:
        self.config = config

    def for_connection(self, remote_addr: tuple[str, int] | None = None) -> RequestService:
        """Return the request handler for a new connection from *remote_addr*."""
        return RequestService(self.config, remote_addr)

    async def dispatch(self, request: Request) -> Any:
        """Dispatch one request without a connection (uses ``request.remote_addr``)."""
        return await dispatch(self.config, request)

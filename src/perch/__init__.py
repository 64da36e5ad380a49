"""Perch: path matching and middleware dispatch for HTTP services.

Compiles route templates into one fast matcher, nests routes in scopes
that inherit middleware, and runs every request through a deterministic
pre → handler → post pipeline with scoped error handling.

Basic usage::

    from perch import Response, RouterBuilder

    def show_user(request):
        return Response(f"user {request.params['id']}")

    config = (
        RouterBuilder()
        .middleware_pre(authenticate)
        .get("/users/:id", show_user)
        .scope("/admin", lambda admin: admin.middleware_pre(require_admin).get("/", dashboard))
        .build()
    )

Serving over ASGI::

    from perch import ASGIApp
    app = ASGIApp(config)
"""

__version__ = "0.1.0"
__all__ = [
    "ASGIApp",
    "BuildError",
    "PatternError",
    "PerchError",
    "Phase",
    "ProtocolError",
    "Request",
    "RequestContext",
    "RequestInfo",
    "RequestService",
    "Response",
    "RouteError",
    "RouterBuilder",
    "RouterConfig",
    "RouterService",
    "RouterSettings",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "RouterBuilder":
        from perch.scope import RouterBuilder

        return RouterBuilder

    if name == "RouterConfig":
        from perch.router import RouterConfig

        return RouterConfig

    if name == "RouterSettings":
        from perch.config import RouterSettings

        return RouterSettings

    if name in ("RouterService", "RequestService"):
        from perch import dispatch as _dispatch

        return getattr(_dispatch, name)

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in ("RequestContext", "RequestInfo", "get_request"):
        from perch import context as _ctx

        return getattr(_ctx, name)

    if name in ("BuildError", "PatternError", "PerchError", "Phase", "ProtocolError", "RouteError"):
        from perch import errors as _errors

        return getattr(_errors, name)

    if name == "ASGIApp":
        from perch.asgi import ASGIApp

        return ASGIApp

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

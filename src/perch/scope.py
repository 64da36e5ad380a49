"""Scope tree and the fluent router builder.

Scopes live in an arena: a flat list of nodes addressed by index, with
children stored as index lists and the parent as an index. Builders are
views onto one node of a shared arena, so nesting never creates
reference cycles and the tree can only grow.

``build()`` walks the arena once from the root, concatenating prefixes,
compiling every route's full path and flattening inherited middleware
into one ``Pipeline`` per scope. The builder is consumed in the process.

Usage::

    builder = RouterBuilder()
    builder.middleware_pre(authenticate)
    builder.get("/", home)

    api = builder.scope("/api")
    api.middleware_post(add_cors_headers)
    api.get("/users/:id", show_user)
    api.err_handler(api_errors)

    config = builder.build()
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Self, TypeAlias

from perch._internal.paths import join_paths
from perch._internal.types import ALL_METHODS, ErrorHandler, Handler
from perch.config import RouterSettings
from perch.errors import BuildError, PatternError
from perch.middleware.pipeline import ErrorHandlerEntry, MiddlewareEntry, MiddlewareKind, Pipeline
from perch.middleware.protocol import PostMiddleware, PostMiddlewareWithInfo, PreMiddleware
from perch.router import RouterConfig, make_default_error_handler, make_not_found
from perch.routing.pattern import RoutePattern, compile_pattern
from perch.routing.table import RouteTable

logger = logging.getLogger("perch.build")

# (scope index, parent prefix, pre chain, post chain, error handler, data)
_Inherited: TypeAlias = tuple[
    int,
    str,
    tuple[MiddlewareEntry, ...],
    tuple[MiddlewareEntry, ...],
    ErrorHandlerEntry,
    dict[type, Any],
]


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    template: str
    methods: tuple[str, ...]
    handler: Handler
    seq: int


@dataclass(slots=True)
class _PendingMiddleware:
    """A middleware waiting to be flattened."""

    func: Callable[..., Any]
    kind: MiddlewareKind
    path: str | None


@dataclass(slots=True)
class _ScopeNode:
    """One node of the scope arena. Mutable during configuration only."""

    prefix: str
    parent: int | None
    children: list[int] = field(default_factory=list)
    routes: list[_PendingRoute] = field(default_factory=list)
    pre: list[_PendingMiddleware] = field(default_factory=list)
    post: list[_PendingMiddleware] = field(default_factory=list)
    error_handler: ErrorHandlerEntry | None = None
    data: dict[type, Any] = field(default_factory=dict)


class _Arena:
    """Shared storage behind a root builder and all of its scope views."""

    __slots__ = ("consumed", "next_seq", "nodes", "not_found", "settings", "state", "state_set")

    def __init__(self, settings: RouterSettings) -> None:
        self.nodes: list[_ScopeNode] = [_ScopeNode(prefix="", parent=None)]
        self.settings = settings
        self.state: Any = None
        self.state_set = False
        self.not_found: Handler | None = None
        self.next_seq = 0
        self.consumed = False

    def add_node(self, prefix: str, parent: int) -> int:
        index = len(self.nodes)
        self.nodes.append(_ScopeNode(prefix=prefix, parent=parent))
        self.nodes[parent].children.append(index)
        return index

    def take_seq(self) -> int:
        seq = self.next_seq
        self.next_seq += 1
        return seq


class RouterBuilder:
    """Fluent, single-use router configuration.

    Every configuration method returns a builder so calls chain. Methods
    act on the scope the builder is bound to; ``scope()`` returns a
    builder bound to a new child scope and ``end()`` walks back up.

    Thread safety:
        Configuration is single-threaded. Only the ``RouterConfig``
        returned by ``build()`` is meant to be shared.
    """

    __slots__ = ("_arena", "_index")

    def __init__(self, settings: RouterSettings | None = None) -> None:
        self._arena = _Arena(settings or RouterSettings())
        self._index = 0

    @classmethod
    def _view(cls, arena: _Arena, index: int) -> Self:
        builder = cls.__new__(cls)
        builder._arena = arena
        builder._index = index
        return builder

    @property
    def _node(self) -> _ScopeNode:
        return self._arena.nodes[self._index]

    @property
    def is_root(self) -> bool:
        return self._index == 0

    # -- Routes --

    def add(self, pattern: str, methods: Iterable[str], handler: Handler) -> Self:
        """Register *handler* for *methods* at *pattern* (relative to this scope)."""
        self._check_usable()
        methods = tuple(m.upper() for m in methods)
        if not methods:
            msg = f"Route {pattern!r} must accept at least one method."
            raise BuildError(msg)
        self._node.routes.append(
            _PendingRoute(pattern, methods, handler, self._arena.take_seq())
        )
        return self

    def get(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("GET",), handler)

    def post(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("POST",), handler)

    def put(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("PUT",), handler)

    def delete(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("DELETE",), handler)

    def patch(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("PATCH",), handler)

    def head(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("HEAD",), handler)

    def options(self, pattern: str, handler: Handler) -> Self:
        return self.add(pattern, ("OPTIONS",), handler)

    def any(self, pattern: str, handler: Handler) -> Self:
        """Register *handler* for every HTTP method at *pattern*."""
        return self.add(pattern, ALL_METHODS, handler)

    def route(
        self,
        pattern: str,
        *,
        methods: Iterable[str] = ("GET",),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Usage::

            @builder.route("/users/:id", methods=["GET", "HEAD"])
            async def show_user(request):
                ...
        """

        def decorator(func: Handler) -> Handler:
            self.add(pattern, methods, func)
            return func

        return decorator

    # -- Middleware --

    def middleware_pre(self, func: PreMiddleware, *, path: str | None = None) -> Self:
        """Run *func* before handlers in this scope and its descendants.

        With *path*, only requests whose path matches that pattern
        (relative to this scope) run it.
        """
        self._check_usable()
        self._node.pre.append(_PendingMiddleware(func, MiddlewareKind.PRE, path))
        return self

    def middleware_post(self, func: PostMiddleware, *, path: str | None = None) -> Self:
        """Run *func* on responses of handlers in this scope and its descendants."""
        self._check_usable()
        self._node.post.append(_PendingMiddleware(func, MiddlewareKind.POST, path))
        return self

    def middleware_post_with_info(
        self,
        func: PostMiddlewareWithInfo,
        *,
        path: str | None = None,
    ) -> Self:
        """Like ``middleware_post`` but *func* also receives a ``RequestInfo``."""
        self._check_usable()
        self._node.post.append(_PendingMiddleware(func, MiddlewareKind.POST_WITH_INFO, path))
        return self

    # -- Scopes --

    def scope(
        self,
        prefix: str,
        configure: Callable[["RouterBuilder"], Any] | None = None,
    ) -> "RouterBuilder":
        """Nest a child scope under *prefix*.

        Without *configure*, returns the child builder (use ``end()`` to
        get back here). With *configure*, calls it with the child builder
        and returns this builder::

            builder.scope("/admin", lambda admin: admin.get("/", dashboard))
        """
        self._check_usable()
        child = self._view(self._arena, self._arena.add_node(prefix, self._index))
        if configure is None:
            return child
        configure(child)
        return self

    def end(self) -> "RouterBuilder":
        """Return the builder of the parent scope."""
        self._check_usable()
        parent = self._node.parent
        if parent is None:
            msg = "end() called on the top-level builder."
            raise BuildError(msg)
        return self._view(self._arena, parent)

    def mount(self, prefix: str, other: "RouterBuilder") -> Self:
        """Merge the pre-built tree of *other* as a child scope under *prefix*.

        *other* must be a top-level builder; it is consumed. Its routes
        keep their relative order and rank after everything registered
        here so far. Its global error handler and data become scoped.
        Mounted routes compile with this builder's settings, so *other*
        must use the default ``RouterSettings`` or the same ones as here.
        """
        self._check_usable()
        other._check_usable()
        if not other.is_root:
            msg = "Only a top-level builder can be mounted."
            raise BuildError(msg)
        if other._arena is self._arena:
            msg = "A builder cannot be mounted into itself."
            raise BuildError(msg)
        if other._arena.state_set or other._arena.not_found is not None:
            msg = "A mounted builder cannot carry state() or not_found(); set them on the top level."
            raise BuildError(msg)
        foreign_settings = other._arena.settings
        if foreign_settings not in (RouterSettings(), self._arena.settings):
            msg = (
                f"Mounted builder settings {foreign_settings!r} differ from "
                f"{self._arena.settings!r}; mounted routes use the top-level settings."
            )
            raise BuildError(msg)

        foreign = other._arena.nodes
        offset = len(self._arena.nodes)

        # Renumber route sequence numbers in their original order
        pending = sorted(
            (route for node in foreign for route in node.routes),
            key=lambda r: r.seq,
        )
        renumbered = {id(route): self._arena.take_seq() for route in pending}

        for i, node in enumerate(foreign):
            parent = self._index if node.parent is None else node.parent + offset
            self._arena.nodes.append(
                _ScopeNode(
                    prefix=prefix if i == 0 else node.prefix,
                    parent=parent,
                    children=[c + offset for c in node.children],
                    routes=[
                        _PendingRoute(r.template, r.methods, r.handler, renumbered[id(r)])
                        for r in node.routes
                    ],
                    pre=list(node.pre),
                    post=list(node.post),
                    error_handler=node.error_handler,
                    data=dict(node.data),
                )
            )
        self._node.children.append(offset)
        other._arena.consumed = True
        return self

    # -- Error handling --

    def err_handler(self, func: ErrorHandler) -> Self:
        """Handle ``RouteError`` raised in this scope: ``func(error) -> Response``.

        On the top-level builder this replaces the default global handler.
        """
        self._check_usable()
        self._node.error_handler = ErrorHandlerEntry(func, with_info=False)
        return self

    def err_handler_with_info(self, func: ErrorHandler) -> Self:
        """Like ``err_handler`` but ``func(error, info) -> Response``."""
        self._check_usable()
        self._node.error_handler = ErrorHandlerEntry(func, with_info=True)
        return self

    def not_found(self, func: Handler) -> Self:
        """Replace the default 404 responder (top level only).

        The responder runs as a handler inside the root scope's pipeline.
        """
        self._check_usable()
        self._require_root("not_found()")
        self._arena.not_found = func
        return self

    # -- Shared state --

    def state(self, value: Any) -> Self:
        """Bind the shared application state (top level only).

        The router only hands the object out, as ``request.state`` and
        ``info.state``. Synchronizing any mutation is up to the application.
        """
        self._check_usable()
        self._require_root("state()")
        self._arena.state = value
        self._arena.state_set = True
        return self

    def data(self, value: Any) -> Self:
        """Attach *value* to this scope, keyed by its type.

        Requests routed within this scope or its descendants read it with
        ``request.data(type)``. A nearer scope's value shadows an outer one.
        """
        self._check_usable()
        self._node.data[type(value)] = value
        return self

    # -- Build --

    def build(self) -> RouterConfig:
        """Freeze the tree into an immutable ``RouterConfig``.

        Raises ``BuildError`` on malformed prefixes, invalid patterns and
        duplicate (method, pattern) pairs. Consumes the builder.
        """
        self._check_usable()
        self._require_root("build()")

        arena = self._arena
        settings = arena.settings
        global_handler = arena.nodes[0].error_handler or ErrorHandlerEntry(
            make_default_error_handler(settings), with_info=True
        )

        pipelines: list[Pipeline | None] = [None] * len(arena.nodes)
        collected: list[tuple[_PendingRoute, str, int]] = []

        # Iterative pre-order walk; each stack entry carries what the node inherits
        stack: list[_Inherited] = [(0, "", (), (), global_handler, {})]
        while stack:
            index, parent_prefix, pre, post, handler, data = stack.pop()
            node = arena.nodes[index]
            prefix = join_paths(parent_prefix, _check_prefix(node.prefix)).rstrip("/")

            pre = pre + tuple(self._entry(m, prefix) for m in node.pre)
            post = tuple(self._entry(m, prefix) for m in node.post) + post
            handler = node.error_handler or handler
            data = {**data, **node.data}

            pipelines[index] = Pipeline(
                scope_id=index,
                prefix=prefix or "/",
                pre=pre,
                post=post,
                error_handler=handler,
                data=MappingProxyType(data),
            )
            collected.extend((route, prefix, index) for route in node.routes)
            stack.extend(
                (child, prefix, pre, post, handler, data) for child in reversed(node.children)
            )

        table = RouteTable()
        owners: dict[tuple[str, str], str] = {}
        for route, prefix, scope_id in sorted(collected, key=lambda item: item[0].seq):
            full = _full_path(prefix, route.template)
            pattern = _compile(full, settings)

            for method in route.methods:
                key = (method, pattern.signature)
                if key in owners:
                    msg = f"Duplicate route {method} {full!r} conflicts with {owners[key]!r}."
                    raise BuildError(msg)
                owners[key] = full

            table.register(pattern, route.methods, route.handler, scope_id)
        table.freeze()

        arena.consumed = True
        logger.info("Built router: %d routes in %d scopes", len(table), len(pipelines))

        return RouterConfig(
            table=table,
            pipelines=tuple(pipelines),  # type: ignore[arg-type]
            not_found=arena.not_found or make_not_found(settings),
            error_handler=global_handler,
            state=arena.state,
            settings=settings,
        )

    # -- Internal --

    def _entry(self, pending: _PendingMiddleware, prefix: str) -> MiddlewareEntry:
        if pending.path is None:
            return MiddlewareEntry(pending.func, pending.kind)
        pattern = _compile(_full_path(prefix, pending.path), self._arena.settings)
        return MiddlewareEntry(pending.func, pending.kind, pattern)

    def _require_root(self, what: str) -> None:
        if not self.is_root:
            msg = f"{what} is only available on the top-level builder."
            raise BuildError(msg)

    def _check_usable(self) -> None:
        if self._arena.consumed:
            msg = (
                "This builder has already been built or mounted. "
                "Create a new RouterBuilder to configure another router."
            )
            raise BuildError(msg)


def _check_prefix(prefix: str) -> str:
    """Validate a scope prefix. ``""`` and ``"/"`` add no path."""
    if prefix in ("", "/"):
        return ""
    if not prefix.startswith("/"):
        msg = f"Scope prefix {prefix!r} must start with '/'."
        raise BuildError(msg)
    for part in prefix.strip("/").split("/"):
        if not part:
            msg = f"Scope prefix {prefix!r} contains an empty segment."
            raise BuildError(msg)
        if part[0] in ":*" or "*" in part:
            msg = f"Scope prefix {prefix!r} cannot contain parameters or wildcards."
            raise BuildError(msg)
    return prefix.rstrip("/")


def _full_path(prefix: str, template: str) -> str:
    if not template.startswith("/"):
        raise BuildError(str(PatternError(template, "must start with '/'")))
    return join_paths(prefix, template)


def _compile(template: str, settings: RouterSettings) -> RoutePattern:
    try:
        return compile_pattern(template, strict_slashes=settings.strict_slashes)
    except PatternError as exc:
        raise BuildError(str(exc)) from exc

"""Per-request context, request metadata and the current-request ContextVar.

Provides:
- ``RequestContext``: a typed insert/fetch map owned by one request.
- ``RequestInfo``: a read-only snapshot of request metadata handed to
  post-middleware and error handlers.
- ``request_var`` / ``get_request()``: the current ``Request`` for this task.

Thread safety:
    ``ContextVar`` is task-local under asyncio, so concurrent requests
    never observe each other's request or context. No locks needed.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.http.headers import Headers
    from perch.http.request import Request

_MISSING: Any = object()

# -- Request context --

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the dispatcher around the pipeline."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a dispatched request.
    """
    return request_var.get()


# -- Per-request metadata --


class RequestContext:
    """A typed map scoped to a single request.

    Values are keyed by their type unless an explicit key is given.
    Pre-middleware populates it; later middleware, the handler,
    post-middleware and the error handler of the same request read it.
    The dispatcher creates a fresh one for every request.

    Usage::

        # In a pre-middleware
        request.context.set(CurrentUser(id=7))

        # In the handler
        user = request.context.get(CurrentUser)
    """

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: dict[Any, Any] = {}

    def set(self, value: Any, *, key: Any = None) -> None:
        """Store *value* under *key*, defaulting to ``type(value)``."""
        self._values[type(value) if key is None else key] = value

    def get(self, key: Any, default: Any = _MISSING) -> Any:
        """Fetch the value stored under *key*.

        Raises ``LookupError`` when missing and no *default* is given.
        """
        try:
            return self._values[key]
        except KeyError:
            if default is not _MISSING:
                return default
            name = getattr(key, "__name__", repr(key))
            msg = f"No {name} in the current request context"
            raise LookupError(msg) from None

    def remove(self, key: Any) -> None:
        """Drop the value stored under *key*, if any."""
        self._values.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"<RequestContext {self._values!r}>"


# -- Request metadata snapshot --


@dataclass(frozen=True, slots=True)
class RequestInfo:
    """Read-only request metadata, retained after the body is consumed.

    Shares the request's ``RequestContext``, so anything a pre-middleware
    stored is visible to post-middleware and error handlers through here.
    """

    method: str
    path: str
    query_string: str
    headers: Headers
    remote_addr: tuple[str, int] | None
    context: RequestContext
    state: Any = None
    _data: Mapping[type, Any] = field(default_factory=dict, repr=False)

    @property
    def uri(self) -> str:
        """Path plus query string, as received."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    def data(self, kind: type, default: Any = _MISSING) -> Any:
        """Return the scope data registered for *kind*."""
        return _lookup_data(self._data, kind, default)

    @classmethod
    def from_request(cls, request: Request) -> RequestInfo:
        """Snapshot the metadata of *request*."""
        return cls(
            method=request.method,
            path=request.path,
            query_string=request.query_string,
            headers=request.headers,
            remote_addr=request.remote_addr,
            context=request.context,
            state=request.state,
            _data=request._data,
        )


def _lookup_data(data: Mapping[type, Any], kind: type, default: Any) -> Any:
    try:
        return data[kind]
    except KeyError:
        if default is not _MISSING:
            return default
        msg = f"No {kind.__name__} data registered for this route's scope"
        raise LookupError(msg) from None

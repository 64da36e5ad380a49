"""Immutable HTTP request.

The body is already buffered by the transport adapter; the router treats
it as an opaque payload. Pre-middleware returns a new ``Request`` (via
the ``with_*`` helpers or ``dataclasses.replace``) instead of mutating.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from perch.context import _MISSING, RequestContext, _lookup_data
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the raw, still percent-encoded path. The dispatcher
    decodes it for matching and fills ``params``, ``state``,
    ``context`` and the scope data before the pipeline runs.
    """

    method: str
    path: str
    query_string: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    remote_addr: tuple[str, int] | None = None
    http_version: str = "1.1"

    # Populated by the dispatcher
    params: Mapping[str, str] = field(default_factory=dict)
    state: Any = None
    context: RequestContext = field(default_factory=RequestContext, compare=False)
    _data: Mapping[type, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def uri(self) -> str:
        """Path plus query string, as received."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    def param(self, name: str, default: str | None = None) -> str | None:
        """Return the path parameter *name*."""
        return self.params.get(name, default)

    def data(self, kind: type, default: Any = _MISSING) -> Any:
        """Return the scope data registered for *kind*.

        The nearest enclosing scope that registered a value of this type
        wins. Raises ``LookupError`` when none did and no default is given.
        """
        return _lookup_data(self._data, kind, default)

    # -- Body access --

    def text(self) -> str:
        """Decode the body as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.body)

    # -- Transformations --

    def with_header(self, name: str, value: str) -> Request:
        """Return a new Request with an additional header."""
        return replace(self, headers=self.headers.with_header(name, value))

    def with_body(self, body: bytes) -> Request:
        """Return a new Request with a different body."""
        return replace(self, body=body)

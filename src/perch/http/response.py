"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Post-middleware typically
returns ``response.with_header(...)`` rather than mutating anything.
"""

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Constructors --

    @classmethod
    def json(cls, data: Any, *, status: int = 200) -> "Response":
        """Serialize *data* as a JSON response."""
        return cls(
            body=json_module.dumps(data),
            status=status,
            content_type="application/json",
        )

    @classmethod
    def empty(cls, status: int = 204) -> "Response":
        """A body-less response, e.g. for OPTIONS or DELETE."""
        return cls(body=b"", status=status)

    # -- Chainable transformations --

    def with_status(self, status: int) -> "Response":
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> "Response":
        """Return a new Response with additional headers."""
        items = headers.items() if isinstance(headers, Mapping) else headers
        return replace(self, headers=(*self.headers, *tuple(items)))

    def with_content_type(self, content_type: str) -> "Response":
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_body(self, body: str | bytes) -> "Response":
        """Return a new Response with a different body."""
        return replace(self, body=body)

    # -- Access --

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of header *name* (case-insensitive)."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key.lower() == name_lower:
                return value
        return default

    @property
    def body_bytes(self) -> bytes:
        """Body encoded as bytes."""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    @property
    def text(self) -> str:
        """Body decoded as text."""
        if isinstance(self.body, str):
            return self.body
        return self.body.decode("utf-8")

"""Typed ASGI definitions.

Raw ASGI callables plus a typed view of the HTTP scope for internal
use by the ASGI adapter. Routing code never sees these.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias
from urllib.parse import quote

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

# Characters ASGI servers leave undecoded in "path" that must stay literal
_PATH_SAFE = "/:@!$&'()*+,;=-._~"


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """Typed HTTP scope parsed from a raw ASGI scope dict."""

    method: str
    raw_path: str
    query_string: str
    http_version: str
    headers: tuple[tuple[bytes, bytes], ...]
    client: tuple[str, int] | None

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        """Parse a raw ASGI scope.

        Prefers ``raw_path`` (still percent-encoded) so the router does the
        decoding itself. Servers that omit it get ``path`` re-quoted.
        """
        raw = scope.get("raw_path")
        if raw:
            # Existing escapes stay; bare non-ASCII bytes become %XX
            raw_path = quote(raw.split(b"?", 1)[0], safe=_PATH_SAFE + "%")
        else:
            raw_path = quote(scope.get("path", "/"), safe=_PATH_SAFE)
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            raw_path=raw_path,
            query_string=scope.get("query_string", b"").decode("latin-1"),
            http_version=scope.get("http_version", "1.1"),
            headers=tuple(scope.get("headers", ())),
            client=tuple(client) if client else None,
        )

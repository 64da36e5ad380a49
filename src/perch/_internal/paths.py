"""Request path decoding and prefix joining."""

import re
from urllib.parse import unquote_to_bytes

from perch.errors import ProtocolError

# A '%' that does not start a two-digit hex escape
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_path(raw: str) -> str:
    """Percent-decode a request path.

    Raises ``ProtocolError`` for malformed escapes or bytes that are not
    valid UTF-8 once decoded. An empty path decodes to ``"/"``.
    """
    if not raw:
        return "/"
    if _BAD_ESCAPE.search(raw):
        msg = f"Malformed percent-escape in path {raw!r}"
        raise ProtocolError(msg)
    try:
        return unquote_to_bytes(raw).decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"Path {raw!r} does not decode to UTF-8"
        raise ProtocolError(msg) from exc


def join_paths(prefix: str, path: str) -> str:
    """Join a scope prefix and a relative template.

    ``join_paths("/api", "/users") -> "/api/users"``
    ``join_paths("/api", "/")      -> "/api"``
    ``join_paths("", "/")          -> "/"``
    """
    prefix = prefix.rstrip("/")
    if path in ("", "/"):
        return prefix or "/"
    return prefix + path

"""ASGI adapter: mounts a ``RouterConfig`` on any ASGI 3 server.

The only component that touches raw ASGI. Buffers the request body,
converts the scope to a ``Request``, dispatches it and sends the
``Response`` back through ``send()``. Routing logic lives elsewhere.

Usage::

    app = ASGIApp(builder.build())
    # uvicorn module:app, hypercorn module:app, ...
"""

import logging
from typing import Any

from perch._internal.asgi import HTTPScope, Receive, Scope, Send
from perch.dispatch import RouterService
from perch.http.headers import Headers
from perch.http.request import Request
from perch.http.response import Response
from perch.router import RouterConfig

logger = logging.getLogger("perch.asgi")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def read_body(receive: Receive) -> bytes:
    """Drain ``http.request`` messages into one byte string."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        body = message.get("body", b"")
        if body:
            chunks.append(body)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def send_response(response: Response, send: Send) -> None:
    """Translate a perch Response into ASGI send() calls."""
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    for name, value in response.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


class ASGIApp:
    """ASGI 3.0 application wrapping a frozen router."""

    __slots__ = ("service",)

    def __init__(self, config: RouterConfig) -> None:
        self.service = RouterService(config)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        http = HTTPScope.from_scope(scope)
        request = Request(
            method=http.method,
            path=http.raw_path,
            query_string=http.query_string,
            headers=Headers(http.headers),
            body=await read_body(receive),
            remote_addr=http.client,
            http_version=http.http_version,
        )

        response: Any = await self.service.for_connection(http.client)(request)
        if not isinstance(response, Response):
            msg = f"Handler returned {type(response).__name__}; the ASGI adapter sends Response only"
            raise TypeError(msg)
        await send_response(response, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        # The router is frozen before it gets here; nothing to start or stop
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

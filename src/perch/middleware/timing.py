"""Request timing: a pre/post middleware pair.

The pre half stamps the start time into the request context; the
post-with-info half reads it back, logs an access line and adds an
``X-Response-Time`` header::

    timer = RequestTimer()
    builder.middleware_pre(timer.start).middleware_post_with_info(timer.finish)

Requests that fail before the post phase never reach ``finish``; the
error handler can still read ``RequestStart`` from ``info.context``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from perch.context import RequestInfo
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.access")


@dataclass(frozen=True, slots=True)
class RequestStart:
    """Monotonic timestamp stored in the request context by ``RequestTimer.start``."""

    at: float


class RequestTimer:
    """Measure and log handler latency per request."""

    __slots__ = ("header", "log")

    def __init__(self, *, header: str | None = "X-Response-Time", log: bool = True) -> None:
        self.header = header
        self.log = log

    def start(self, request: Request) -> Request:
        request.context.set(RequestStart(time.monotonic()))
        return request

    def finish(self, response: Any, info: RequestInfo) -> Any:
        started = info.context.get(RequestStart, None)
        if started is None:
            return response
        elapsed = time.monotonic() - started.at

        if self.log:
            status = getattr(response, "status", "-")
            logger.info("%s %s %s %.1fms", info.method, info.uri, status, elapsed * 1000)

        if self.header and isinstance(response, Response):
            return response.with_header(self.header, f"{elapsed:.4f}s")
        return response

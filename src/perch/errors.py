"""Perch exception hierarchy.

Shared across the pattern compiler, builder, pipeline and dispatcher so
every module raises and catches the same types.

Three families matter at runtime:

- ``BuildError`` / ``PatternError`` happen while configuring a router and
  surface to the ``build()`` caller. They never occur during dispatch.
- ``ProtocolError`` means the request itself is malformed. The dispatcher
  answers it locally; user error handlers never see it.
- ``RouteError`` wraps any failure raised by middleware or a handler and
  is resolved by exactly one error handler.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.context import RequestInfo


class PerchError(Exception):
    """Base for all perch-specific errors."""


class PatternError(PerchError):
    """Raised when a path template cannot be compiled."""

    def __init__(self, template: str, reason: str) -> None:
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid route pattern {template!r}: {reason}")


class BuildError(PerchError):
    """Raised when a router configuration is invalid.

    Always raised from the builder, typically by ``RouterBuilder.build()``.
    """


class ProtocolError(PerchError):
    """Raised when request input cannot be interpreted (e.g. a bad path escape)."""


class Phase(StrEnum):
    """Pipeline phase in which a ``RouteError`` originated."""

    PRE = "pre"
    HANDLER = "handler"
    POST = "post"


class RouteError(PerchError):
    """A middleware or handler failure, tagged with where it happened.

    ``cause`` is the original exception (also chained as ``__cause__``).
    ``info`` is the request metadata snapshot taken when the failure
    was caught.
    """

    def __init__(self, phase: Phase, cause: BaseException, info: RequestInfo) -> None:
        self.phase = phase
        self.cause = cause
        self.info = info
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.phase} failed for {self.info.method} {self.info.path}: {self.cause}"

    def __repr__(self) -> str:
        return f"RouteError(phase={self.phase!r}, cause={self.cause!r})"

"""Routing: path-pattern compiler and the frozen route table.

Routes are registered while a router is being built and compiled into
an immutable lookup structure when the builder freezes.
"""

from perch.routing.pattern import RoutePattern, Segment, compile_pattern, parse_template
from perch.routing.route import Route, RouteMatch
from perch.routing.table import RouteTable

__all__ = [
    "Route",
    "RouteMatch",
    "RoutePattern",
    "RouteTable",
    "Segment",
    "compile_pattern",
    "parse_template",
]

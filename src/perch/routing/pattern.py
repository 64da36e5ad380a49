"""Path-pattern compiler.

Turns a route template into an anchored regular expression plus the
ordered list of parameter names it captures.

Template syntax::

    /users                literal segments
    /users/:id            one non-empty segment, captured as "id"
    /files/*path          the remainder (may contain "/"), captured as "path"
    /static/*             the remainder, not captured

Wildcards are terminal. Matching always runs on the percent-decoded path.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

from perch.errors import PatternError

_PARAM_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


class SegmentKind(StrEnum):
    LITERAL = "literal"
    PARAM = "param"
    WILDCARD = "wildcard"


@dataclass(frozen=True, slots=True)
class Segment:
    """A parsed segment of a route template.

    Literal:   ``users``  (kind=LITERAL, value="users")
    Param:     ``:id``    (kind=PARAM, value="id")
    Wildcard:  ``*path``  (kind=WILDCARD, value="path"; "" when anonymous)
    """

    kind: SegmentKind
    value: str


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled route template. Immutable and safe to share.

    ``source`` is the capture-free regex body used by the route table's
    combined matcher; ``regex`` is the anchored, capturing matcher used
    to extract parameters. ``signature`` identifies templates that match
    the same set of paths regardless of parameter names.
    """

    template: str
    segments: tuple[Segment, ...]
    regex: re.Pattern[str]
    source: str
    param_names: tuple[str, ...]
    signature: str

    def match(self, path: str) -> dict[str, str] | None:
        """Return extracted params if *path* matches, else ``None``."""
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        # Wildcards that matched nothing report None; normalize to ""
        return {name: m.group(name) or "" for name in self.param_names}

    def matches(self, path: str) -> bool:
        return self.regex.fullmatch(path) is not None


def parse_template(template: str) -> list[Segment]:
    """Parse a route template into segments.

    Examples::

        "/"               -> []
        "/users"          -> [Segment(LITERAL, "users")]
        "/users/:id"      -> [Segment(LITERAL, "users"), Segment(PARAM, "id")]
        "/files/*rest"    -> [Segment(LITERAL, "files"), Segment(WILDCARD, "rest")]

    Raises ``PatternError`` on malformed syntax.
    """
    if not template.startswith("/"):
        raise PatternError(template, "must start with '/'")

    body = template[1:]
    if body.endswith("/"):
        body = body[:-1]
    if not body:
        return []

    segments: list[Segment] = []
    seen: set[str] = set()
    parts = body.split("/")
    for i, part in enumerate(parts):
        if not part:
            raise PatternError(template, "empty path segment")

        if part[0] == "*":
            if i != len(parts) - 1:
                raise PatternError(template, f"wildcard {part!r} must be the last segment")
            name = part[1:]
            if name:
                _check_name(template, name, seen)
            segments.append(Segment(SegmentKind.WILDCARD, name))
        elif part[0] == ":":
            name = part[1:]
            _check_name(template, name, seen)
            segments.append(Segment(SegmentKind.PARAM, name))
        else:
            if "*" in part:
                raise PatternError(template, f"'*' is only allowed as a whole segment, got {part!r}")
            segments.append(Segment(SegmentKind.LITERAL, part))
    return segments


def _check_name(template: str, name: str, seen: set[str]) -> None:
    if not name:
        raise PatternError(template, "parameter name is empty")
    if not _PARAM_NAME.match(name):
        raise PatternError(template, f"parameter name {name!r} is not an identifier")
    if name in seen:
        raise PatternError(template, f"duplicate parameter name {name!r}")
    seen.add(name)


def compile_pattern(template: str, *, strict_slashes: bool = False) -> RoutePattern:
    """Compile *template* into a ``RoutePattern``.

    Unless *strict_slashes* is set, the compiled matcher also accepts
    the path with one trailing ``/``.
    """
    segments = parse_template(template)

    capturing = _build_regex(segments, capture=True, strict_slashes=strict_slashes)
    plain = _build_regex(segments, capture=False, strict_slashes=strict_slashes)

    return RoutePattern(
        template=template,
        segments=tuple(segments),
        regex=re.compile(capturing),
        source=plain,
        param_names=tuple(
            s.value for s in segments if s.kind is not SegmentKind.LITERAL and s.value
        ),
        signature=_signature(segments),
    )


def _build_regex(segments: list[Segment], *, capture: bool, strict_slashes: bool) -> str:
    if not segments:
        return "/"

    parts: list[str] = []
    for seg in segments:
        if seg.kind is SegmentKind.LITERAL:
            parts.append("/" + re.escape(seg.value))
        elif seg.kind is SegmentKind.PARAM:
            parts.append(f"/(?P<{seg.value}>[^/]+)" if capture else "/[^/]+")
        elif capture and seg.value:
            # The remainder is optional so "/files" matches "/files/*rest"
            parts.append(f"(?:/(?P<{seg.value}>.*))?")
        else:
            parts.append("(?:/.*)?")

    source = "".join(parts)
    if not strict_slashes and segments[-1].kind is not SegmentKind.WILDCARD:
        source += "/?"
    return source


def _signature(segments: list[Segment]) -> str:
    if not segments:
        return "/"
    out: list[str] = []
    for seg in segments:
        if seg.kind is SegmentKind.LITERAL:
            out.append(seg.value)
        elif seg.kind is SegmentKind.PARAM:
            out.append(":")
        else:
            out.append("*")
    return "/" + "/".join(out)

"""Route template compiler and segment matcher.

Templates are ``/``-delimited. Each segment is one of::

    users          literal, compared case-sensitively
    {id}           required parameter, consumes one segment
    {id:int}       parameter restricted by a converter (see ``CONVERTERS``)
    {name?}        optional parameter, binds ``None`` when absent
    *  /  *rest    wildcard, consumes the remainder of the path

A wildcard may appear once and only as the final segment. Patterns are
compiled once, at registration time, and are immutable afterwards.
"""

import re
from dataclasses import dataclass

from perch.errors import PatternError
from perch.routing.params import CONVERTERS

_PARAM_RE = re.compile(r"^\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<conv>[a-z]+))?(?P<opt>\?)?\}$")
_SEGMENT_RE = re.compile(r"[^/]+")

DEFAULT_WILDCARD_NAME = "wildcard"


@dataclass(frozen=True, slots=True)
class Literal:
    """A segment that must equal the input segment exactly."""

    text: str


@dataclass(frozen=True, slots=True)
class Param:
    """A named segment capturing exactly one input segment."""

    name: str
    nullable: bool = False
    converter: str = "str"


@dataclass(frozen=True, slots=True)
class Wildcard:
    """Captures everything after the preceding segments, verbatim."""

    name: str = DEFAULT_WILDCARD_NAME


type Segment = Literal | Param | Wildcard


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Result of a successful ``PathPattern.match``.

    ``consumed`` is the exact prefix of the input path covered by the
    pattern. ``params`` preserves the declaration order of the pattern.
    """

    consumed: str
    params: dict[str, str | None]


@dataclass(frozen=True, slots=True)
class PathPattern:
    """A compiled route template."""

    template: str
    segments: tuple[Segment, ...]

    @property
    def param_names(self) -> tuple[str, ...]:
        """Names bound by this pattern, in declaration order."""
        return tuple(s.name for s in self.segments if not isinstance(s, Literal))

    @property
    def has_wildcard(self) -> bool:
        return bool(self.segments) and isinstance(self.segments[-1], Wildcard)

    def match(self, path: str, *, prefix: bool = False) -> PatternMatch | None:
        """Match *path* against this pattern.

        With ``prefix=False`` the whole path must be covered. With
        ``prefix=True`` trailing input segments are left unconsumed, which
        is how mounted routers find the remainder to delegate.
        """
        parts = [(m.group(), m.start(), m.end()) for m in _SEGMENT_RE.finditer(path)]
        params: dict[str, str | None] = {}
        end = 0
        index = 0
        last = len(self.segments) - 1

        for position, segment in enumerate(self.segments):
            if isinstance(segment, Wildcard):
                rest = path[end:]
                if rest.startswith("/"):
                    rest = rest[1:]
                params[segment.name] = rest
                return PatternMatch(consumed=path, params=params)

            if index == len(parts):
                if isinstance(segment, Param) and segment.nullable and position == last:
                    params[segment.name] = None
                    return PatternMatch(consumed=path[:end], params=params)
                return None

            text, _, part_end = parts[index]
            if isinstance(segment, Literal):
                if text != segment.text:
                    return None
            else:
                regex, _ = CONVERTERS[segment.converter]
                if not regex.fullmatch(text):
                    return None
                params[segment.name] = text

            end = part_end
            index += 1

        if index < len(parts) and not prefix:
            return None
        return PatternMatch(consumed=path[:end], params=params)

    def __str__(self) -> str:
        return self.template


def compile_pattern(template: str) -> PathPattern:
    """Compile a route template into a ``PathPattern``.

    Raises ``PatternError`` when the template is malformed.

    Examples::

        "/"                  -> ()
        "/users/{id:int}"    -> (Literal("users"), Param("id", converter="int"))
        "/greet/{name?}"     -> (Literal("greet"), Param("name", nullable=True))
        "/files/*path"       -> (Literal("files"), Wildcard("path"))
    """
    segments: list[Segment] = []
    seen: set[str] = set()
    raw_parts = [p for p in template.split("/") if p]

    for i, part in enumerate(raw_parts):
        if part.startswith("*"):
            if any(isinstance(s, Wildcard) for s in segments):
                raise PatternError(template, "only one wildcard is allowed")
            if i != len(raw_parts) - 1:
                raise PatternError(template, "a wildcard must be the final segment")
            name = part[1:] or DEFAULT_WILDCARD_NAME
            if not name.isidentifier():
                raise PatternError(template, f"invalid wildcard name {name!r}")
            segment: Segment = Wildcard(name)
        elif part.startswith("{"):
            m = _PARAM_RE.match(part)
            if m is None:
                raise PatternError(template, f"malformed parameter segment {part!r}")
            conv = m.group("conv") or "str"
            if conv not in CONVERTERS:
                raise PatternError(
                    template,
                    f"unknown converter {conv!r}; expected one of {', '.join(CONVERTERS)}",
                )
            segment = Param(m.group("name"), nullable=m.group("opt") is not None, converter=conv)
            if segment.nullable and i != len(raw_parts) - 1:
                raise PatternError(template, "an optional parameter must be the final segment")
        elif part.startswith("<") or part.startswith(":"):
            raise PatternError(
                template, f"segment {part!r} uses <param> or :param syntax; perch expects {{param}}"
            )
        else:
            if "{" in part or "}" in part or "*" in part:
                raise PatternError(template, f"parameters must span a whole segment, got {part!r}")
            segment = Literal(part)

        if not isinstance(segment, Literal):
            if segment.name in seen:
                raise PatternError(template, f"duplicate parameter name {segment.name!r}")
            seen.add(segment.name)
        segments.append(segment)

    return PathPattern(template=template, segments=tuple(segments))

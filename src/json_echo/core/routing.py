"""
JSON Echo Route Keys and Path Patterns

Pure helpers that turn configuration route keys into (method, pattern)
identities and match concrete request paths against compiled patterns.

Supported route keys:
- /api/users            (method GET)
- [POST] /api/users     (bracketed method, case-insensitive)

Supported parameter syntaxes (equivalent):
- /api/users/:id
- /api/users/{id}
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote


DEFAULT_METHOD = "GET"

HTTP_METHODS = frozenset({
    "GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS",
})


class RouteKeyError(ValueError):
    """A route key or method string cannot be normalized."""


@dataclass(frozen=True)
class Segment:
    """One path segment: a literal, or a named parameter when `is_param`."""

    value: str
    is_param: bool = False

    def __str__(self) -> str:
        return f":{self.value}" if self.is_param else self.value


@dataclass(frozen=True)
class PathPattern:
    """A compiled path pattern. Compile once, match many times."""

    source: str = field(compare=False)
    segments: Tuple[Segment, ...] = ()

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(s.value for s in self.segments if s.is_param)

    @property
    def is_literal(self) -> bool:
        return not any(s.is_param for s in self.segments)

    @property
    def specificity(self) -> Tuple[bool, ...]:
        """
        Literal-first ordering key. Higher sorts first: a literal segment
        outranks a parameter at the earliest position where two patterns
        differ.
        """
        return tuple(not s.is_param for s in self.segments)

    def match(self, segments: List[str]) -> Optional[Dict[str, str]]:
        """
        Match already-split path segments.

        Returns:
            Bound parameters (possibly empty) or None when the path doesn't
            match.
        """
        if len(segments) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for pattern_segment, value in zip(self.segments, segments):
            if pattern_segment.is_param:
                if not value:
                    return None
                params[pattern_segment.value] = value
            elif pattern_segment.value != value:
                return None

        return params

    def __str__(self) -> str:
        return "/" + "/".join(str(s) for s in self.segments)


def split_path(path: str) -> List[str]:
    """
    Split a URL path into non-empty segments. Query strings are dropped.

    Segments are percent-decoded after splitting, so an encoded "/" (%2F)
    stays inside its segment. Pass the raw, still-encoded request path.
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    return [unquote(segment) for segment in path.split("/") if segment]


def compile_pattern(path: str) -> PathPattern:
    """
    Compile a path pattern string.

    Raises:
        RouteKeyError: If the path doesn't start with '/' or a parameter
            segment has no name
    """
    if not path.startswith("/"):
        raise RouteKeyError(f"path '{path}' must start with '/'")

    segments = []
    seen = set()
    for raw in split_path(path):
        name = None
        if raw.startswith(":"):
            name = raw[1:]
        elif raw.startswith("{") and raw.endswith("}"):
            name = raw[1:-1].strip()

        if name is None:
            segments.append(Segment(raw))
            continue

        if not name:
            raise RouteKeyError(f"empty parameter name in path '{path}'")
        if name in seen:
            raise RouteKeyError(f"parameter '{name}' appears twice in path '{path}'")
        seen.add(name)
        segments.append(Segment(name, is_param=True))

    return PathPattern(source=path, segments=tuple(segments))


def normalize_method(method: str) -> str:
    """Upper-case and validate an HTTP method name."""
    if not isinstance(method, str) or not method.strip():
        raise RouteKeyError("method must be a non-empty string")

    normalized = method.strip().upper()
    if normalized not in HTTP_METHODS:
        raise RouteKeyError(f"unknown method '{method}'")
    return normalized


def parse_route_key(key: str) -> Tuple[Optional[str], str]:
    """
    Split an optional [METHOD] prefix from a route key.

    Returns:
        (method or None when the key has no prefix, path)
    """
    key = key.strip()
    if not key.startswith("["):
        return None, key

    end = key.find("]")
    if end == -1:
        raise RouteKeyError(f"unterminated method prefix in '{key}'")

    method = normalize_method(key[1:end])
    return method, key[end + 1:].strip()


def normalize_route_key(key: str, method: Optional[str] = None) -> Tuple[str, PathPattern]:
    """
    Normalize a route key into its (method, pattern) identity.

    Args:
        key: Route key as written in the configuration
        method: The route's own `method` field, if any. It must agree with a
            bracketed prefix when both are given.

    Raises:
        RouteKeyError: On unknown methods, disagreeing methods or bad paths
    """
    key_method, path = parse_route_key(key)
    field_method = normalize_method(method) if method is not None else None

    if key_method and field_method and key_method != field_method:
        raise RouteKeyError(
            f"method field '{field_method}' conflicts with key method '{key_method}'"
        )

    resolved = key_method or field_method or DEFAULT_METHOD
    return resolved, compile_pattern(path)


def route_identifier(method: str, pattern: PathPattern) -> str:
    """
    Canonical string form of a route identity: "[GET] /api/users/:id".

    Parameters are always written with the colon syntax and empty segments
    are dropped, so "/users/{id}/" and "/users/:id" share one identity.
    """
    return f"[{method}] {pattern}"

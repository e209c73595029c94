"""Resource path patterns.

Path specs use the express-style syntax::

    /users/:id          one segment, captured as ``id``
    /users/:id?         optional segment
    /files/:path*       zero or more segments
    /files/:path+       one or more segments
    /orders/:id(\\d+)   custom group
    /static/*           anything, including ``/``

A spec without any of these tokens is a literal and matches only itself.
Parameterized specs compile to a case-insensitive, anchored regular
expression that tolerates one trailing slash.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .exceptions import InvalidResourceError

DELIMITER = "/"

_TOKEN = re.compile(
    r"(\\.)"
    r"|([/.])?(?:(?:\:(\w+)(?:\(((?:\\.|[^\\()])+)\))?|\(((?:\\.|[^\\()])+)\))([+*?])?|(\*))"
)
_ESCAPE = re.compile(r"([.+*?=^!:${}()\[\]|/\\])")
_ESCAPE_GROUP = re.compile(r"([=!:$/()])")


@dataclass(frozen=True)
class Param:
    """A parameter token of a path spec."""

    name: Union[str, int]
    prefix: str
    delimiter: str
    optional: bool
    repeat: bool
    partial: bool
    pattern: str


def _escape(text: str) -> str:
    return _ESCAPE.sub(r"\\\1", text)


def tokenize(spec: str) -> list[Union[str, Param]]:
    """Split a path spec into literal strings and :class:`Param` tokens."""

    tokens: list[Union[str, Param]] = []
    key = 0
    index = 0
    path = ""
    for match in _TOKEN.finditer(spec):
        escaped, prefix, name, capture, group, modifier, asterisk = match.groups()
        path += spec[index : match.start()]
        index = match.end()
        if escaped:
            path += escaped[1]
            continue
        if path:
            tokens.append(path)
            path = ""
        following = spec[index] if index < len(spec) else None
        delimiter = prefix or DELIMITER
        pattern = capture or group
        if pattern:
            pattern = _ESCAPE_GROUP.sub(r"\\\1", pattern)
        elif asterisk:
            pattern = ".*"
        else:
            pattern = f"[^{_escape(delimiter)}]+?"
        if name is None:
            name, key = key, key + 1
        tokens.append(
            Param(
                name=name,
                prefix=prefix or "",
                delimiter=delimiter,
                optional=modifier in ("?", "*"),
                repeat=modifier in ("+", "*"),
                partial=prefix is not None and following is not None and following != prefix,
                pattern=pattern,
            )
        )
    path += spec[index:]
    if path:
        tokens.append(path)
    return tokens


def tokens_to_regex(tokens: list[Union[str, Param]]) -> re.Pattern[str]:
    route = ""
    for token in tokens:
        if isinstance(token, str):
            route += _escape(token)
            continue
        prefix = _escape(token.prefix)
        capture = f"(?:{token.pattern})"
        if token.repeat:
            capture += f"(?:{prefix}{capture})*"
        if not token.optional:
            capture = f"{prefix}({capture})"
        elif token.partial:
            capture = f"{prefix}({capture})?"
        else:
            capture = f"(?:{prefix}({capture}))?"
        route += capture
    delimiter = _escape(DELIMITER)
    if route.endswith(delimiter):
        route = route[: -len(delimiter)]
    return re.compile(f"^{route}(?:{delimiter}(?=$))?$", re.IGNORECASE)


@dataclass(frozen=True)
class ResourcePattern:
    """A compiled resource path spec.

    ``identity`` is the registry key: the spec itself for literals and the
    regular expression source otherwise.
    """

    spec: str
    identity: str
    regex: Optional[re.Pattern[str]] = field(default=None, compare=False)
    keys: tuple[Union[str, int], ...] = ()

    @property
    def is_literal(self) -> bool:
        return self.regex is None

    @property
    def sort_key(self) -> int:
        return len(self.spec)

    def matches(self, path: str) -> bool:
        if self.regex is None:
            return path == self.spec
        return self.regex.match(path) is not None

    def params(self, path: str) -> dict[Union[str, int], Optional[str]]:
        """Return the captured parameters of ``path``, or ``{}`` if it does not match."""

        if self.regex is None:
            return {}
        match = self.regex.match(path)
        if match is None:
            return {}
        return dict(zip(self.keys, match.groups()))


def compile_resource(spec: Any) -> ResourcePattern:
    """Compile a path spec into a :class:`ResourcePattern`."""

    if not isinstance(spec, str) or not spec:
        raise InvalidResourceError(
            message="Path has to be a non-empty string",
            details={"resource": repr(spec)},
        )
    spec = str(spec)
    tokens = tokenize(spec)
    keys = tuple(token.name for token in tokens if isinstance(token, Param))
    if not keys:
        return ResourcePattern(spec=spec, identity=spec)
    try:
        regex = tokens_to_regex(tokens)
    except re.error as exc:
        raise InvalidResourceError(
            message=f"Invalid path pattern {spec!r}: {exc}",
            details={"resource": spec},
        ) from exc
    return ResourcePattern(spec=spec, identity=regex.pattern, regex=regex, keys=keys)

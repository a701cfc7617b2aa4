"""Placeholder parsing for SQL templates.

Templates carry two placeholder sigils:

- ``:name`` bind variables, rewritten at compile time to the driver's
  native positional marker, one marker per occurrence.
- ``$name`` direct substitutions, kept in place and spliced with literal
  text before every execution.

Quoted strings, dollar-quoted strings, comments and ``::type`` casts are
skipped by the tokenizer, so sigils inside them are left alone.
"""

import re
from collections.abc import Sequence
from enum import Enum
from typing import Final

__all__ = ("ParameterStyle", "ParsedSQL", "parse_placeholders")


_PLACEHOLDER_REGEX: Final = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*") |
    (?P<squote>'(?:[^'\\]|\\.)*') |
    (?P<dollar_quoted_string>\$(?P<dollar_tag>\w*)\$[\s\S]*?\$(?P=dollar_tag)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<pg_cast>::\w+) |
    (?P<bind>(?<![\w:]):(?P<bind_name>[A-Za-z_]\w*)) |
    (?P<direct>\$(?P<direct_name>[A-Za-z_]\w*))
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)


class ParameterStyle(str, Enum):
    """Positional marker style understood by the database driver.

    - QMARK: ? placeholders
    - NUMERIC: $1, $2 placeholders
    - POSITIONAL_COLON: :1, :2 placeholders
    - POSITIONAL_PYFORMAT: %s placeholders
    """

    QMARK = "qmark"
    NUMERIC = "numeric"
    POSITIONAL_COLON = "positional_colon"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    def marker(self, position: int) -> str:
        """Return the marker for the 1-based ``position``."""
        if self is ParameterStyle.NUMERIC:
            return f"${position}"
        if self is ParameterStyle.POSITIONAL_COLON:
            return f":{position}"
        if self is ParameterStyle.POSITIONAL_PYFORMAT:
            return "%s"
        return "?"

    def escape_literal(self, text: str) -> str:
        """Escape literal text so the driver does not read it as markers."""
        if self is ParameterStyle.POSITIONAL_PYFORMAT:
            return text.replace("%", "%%")
        return text


class ParsedSQL:
    """A template statement with bind markers normalized.

    ``sql`` is the statement text with native positional markers in place of
    bind variables and the ``$name`` direct substitutions still present.
    ``render`` splices substitution values at the recorded positions.
    """

    __slots__ = ("bind_names", "direct_names", "parameter_style", "segments")

    def __init__(
        self,
        segments: "Sequence[str]",
        bind_names: "Sequence[str]",
        direct_names: "Sequence[str]",
        parameter_style: ParameterStyle,
    ) -> None:
        if len(segments) != len(direct_names) + 1:
            msg = "segments must surround every direct substitution"
            raise ValueError(msg)
        self.segments = tuple(segments)
        self.bind_names = tuple(bind_names)
        self.direct_names = tuple(direct_names)
        self.parameter_style = parameter_style

    @property
    def sql(self) -> str:
        parts = [self.segments[0]]
        for name, segment in zip(self.direct_names, self.segments[1:]):
            parts.extend((f"${name}", segment))
        return "".join(parts)

    @property
    def needs_substitution(self) -> bool:
        return bool(self.direct_names)

    def render(self, values: "Sequence[str]") -> str:
        """Build executable SQL text from direct substitution values.

        Args:
            values: Literal SQL text for each entry of ``direct_names``, in order.

        Returns:
            The statement text with every ``$name`` replaced.
        """
        if len(values) != len(self.direct_names):
            msg = f"expected {len(self.direct_names)} substitution values, got {len(values)}"
            raise ValueError(msg)
        parts = [self.segments[0]]
        for value, segment in zip(values, self.segments[1:]):
            parts.extend((self.parameter_style.escape_literal(value), segment))
        return "".join(parts)

    def __repr__(self) -> str:
        return f"ParsedSQL(sql={self.sql!r}, bind_names={self.bind_names!r}, direct_names={self.direct_names!r})"


def parse_placeholders(sql: str, parameter_style: ParameterStyle = ParameterStyle.QMARK) -> ParsedSQL:
    """Extract bind and direct substitution placeholders from ``sql``.

    Bind names are returned in order of appearance with duplicates kept, one
    per emitted marker.

    Args:
        sql: Raw statement text.
        parameter_style: Marker style to emit for bind variables.

    Returns:
        The parsed statement.
    """
    segments: list[str] = []
    bind_names: list[str] = []
    direct_names: list[str] = []
    current: list[str] = []
    position = 0

    for match in _PLACEHOLDER_REGEX.finditer(sql):
        current.append(parameter_style.escape_literal(sql[position : match.start()]))
        position = match.end()
        if match.group("bind"):
            bind_names.append(match.group("bind_name"))
            current.append(parameter_style.marker(len(bind_names)))
        elif match.group("direct"):
            direct_names.append(match.group("direct_name"))
            segments.append("".join(current))
            current = []
        else:
            current.append(parameter_style.escape_literal(match.group(0)))

    current.append(parameter_style.escape_literal(sql[position:]))
    segments.append("".join(current))
    return ParsedSQL(segments, bind_names, direct_names, parameter_style)

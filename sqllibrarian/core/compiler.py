"""Compile tag templates into statement chains.

A template body holds one or more statements separated by blank lines. A
block reading ``include <tag>`` pulls in the chain of another tag; every
other block becomes a :class:`CompiledStatement`.
"""

import re
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Final, NamedTuple, Optional, Union

from sqllibrarian.core.analysis import bare_projection_labels
from sqllibrarian.core.select import StatementKind
from sqllibrarian.core.statement import CompiledStatement
from sqllibrarian.exceptions import CompileError, IncludeCycleError, IncludeError
from sqllibrarian.utils.logging import get_logger

if TYPE_CHECKING:
    from sqllibrarian.core.parameters import ParameterStyle
    from sqllibrarian.protocols import ArchiverProtocol, ConnectionProtocol

__all__ = ("ChainCompiler", "ChainEntry", "IncludeReference", "StatementChain", "parse_include", "split_statements")

logger = get_logger("compiler")

_BLOCK_DELIMITER: Final = re.compile(r"(?:[ \t\r\f\v]*\n){2,}")
_INCLUDE_KEYWORD: Final = re.compile(r"^include(?:\s|$)", re.IGNORECASE)
_INCLUDE_DIRECTIVE: Final = re.compile(r"^include\s+(?P<tag>\S+)$", re.IGNORECASE)
_LEADING_COMMENTS: Final = re.compile(r"\A(?:\s+|--[^\n]*(?:\n|\Z)|/\*.*?\*/)*", re.DOTALL)


class IncludeReference(NamedTuple):
    """Chain entry that runs another tag's chain in place."""

    tag: str


ChainEntry = Union[CompiledStatement, IncludeReference]


class StatementChain:
    """Ordered statements and include references compiled from one tag."""

    __slots__ = ("entries", "tag")

    def __init__(self, tag: str, entries: "Sequence[ChainEntry]") -> None:
        self.tag = tag
        self.entries: tuple[ChainEntry, ...] = tuple(entries)

    def __iter__(self) -> "Iterator[ChainEntry]":
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"StatementChain(tag={self.tag!r}, entries={len(self.entries)})"

    @property
    def includes(self) -> "list[str]":
        return [entry.tag for entry in self.entries if isinstance(entry, IncludeReference)]

    @property
    def statements(self) -> "list[CompiledStatement]":
        return [entry for entry in self.entries if isinstance(entry, CompiledStatement)]


def _strip_leading_comments(sql_text: str) -> str:
    """Remove leading ``--`` and ``/* */`` comments from a SQL string."""
    return _LEADING_COMMENTS.sub("", sql_text, count=1).strip()


def split_statements(body: str) -> "list[str]":
    """Split a template body on blank lines.

    Empty and comment-only blocks are dropped and one trailing ``;`` is
    removed from each block.
    """
    statements = []
    for block in _BLOCK_DELIMITER.split(body):
        statement = _strip_leading_comments(block)
        if statement.endswith(";"):
            statement = statement[:-1].rstrip()
        if statement:
            statements.append(statement)
    return statements


def parse_include(block: str) -> "Optional[str]":
    """Return the tag named by an ``include`` block, or None for other blocks.

    Raises:
        IncludeError: If the block starts with ``include`` but does not name exactly one tag.
    """
    if not _INCLUDE_KEYWORD.match(block):
        return None
    match = _INCLUDE_DIRECTIVE.match(block)
    if match is None:
        msg = f"Malformed include directive: {block!r}"
        raise IncludeError(msg)
    return match.group("tag")


class ChainCompiler:
    """Turns template text into cached statement chains.

    The archiver decides whether a cached chain is still usable; the compiler
    only asks it and compiles on a miss.
    """

    __slots__ = ("all_arrays", "archiver", "connection", "dialect", "parameter_style", "warn_bare_columns")

    def __init__(
        self,
        archiver: "ArchiverProtocol",
        connection: "ConnectionProtocol",
        *,
        all_arrays: bool = False,
        parameter_style: "Optional[ParameterStyle]" = None,
        warn_bare_columns: bool = True,
        dialect: "Optional[str]" = None,
    ) -> None:
        self.archiver = archiver
        self.connection = connection
        self.all_arrays = all_arrays
        self.parameter_style = parameter_style
        self.warn_bare_columns = warn_bare_columns
        self.dialect = dialect

    def get(self, tag: str) -> StatementChain:
        """Return the cached chain for ``tag``, compiling it on a miss."""
        chain = self.archiver.lookup(tag)
        if chain is None:
            chain = self.compile(tag)
        return chain

    def compile(self, tag: str, _including: "tuple[str, ...]" = ()) -> StatementChain:
        """Compile ``tag`` and every tag it includes that is not cached.

        Nothing is cached for a tag whose compilation fails.

        Args:
            tag: Tag to compile.

        Returns:
            The compiled chain, also stored in the archiver.

        Raises:
            TagNotFoundError: If the archiver does not know ``tag`` or an included tag.
            SelectModeError: If a statement has an unknown select suffix.
            IncludeError: If an include directive is malformed or cyclic.
            DriverError: If the driver rejects a statement.
        """
        path = (*_including, tag)
        body = self.archiver.find(tag)
        logger.debug("PREPARE %s", tag, extra={"extra_fields": {"tag": tag}})

        entries: list[ChainEntry] = []
        for block in split_statements(body):
            try:
                include = parse_include(block)
                if include is not None:
                    if include in path:
                        raise IncludeCycleError((*path, include))
                    entries.append(IncludeReference(include))
                    if self.archiver.lookup(include) is None:
                        self.compile(include, path)
                    continue
                statement = CompiledStatement(
                    self.connection, block, all_arrays=self.all_arrays, parameter_style=self.parameter_style
                )
            except CompileError as exc:
                if exc.tag is None:
                    exc.tag = tag
                raise
            if self.warn_bare_columns:
                self._check_labels(tag, statement)
            entries.append(statement)

        chain = StatementChain(tag, entries)
        self.archiver.cache(tag, chain)
        return chain

    def _check_labels(self, tag: str, statement: CompiledStatement) -> None:
        if statement.kind is not StatementKind.SELECT_ZERO_OR_MORE or statement.direct_names:
            return
        labels = bare_projection_labels(statement.sql, self.dialect)
        if labels:
            logger.warning(
                "Multi-row select in %s stores bare columns %s as sequences of scalars; "
                "use 'group.column' labels to collect rows",
                tag,
                ", ".join(labels),
                extra={"extra_fields": {"tag": tag, "labels": labels}},
            )

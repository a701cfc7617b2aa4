"""Compiled statements."""

from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Optional

from sqllibrarian.core.context import DataContext
from sqllibrarian.core.parameters import ParameterStyle, ParsedSQL, parse_placeholders
from sqllibrarian.core.select import FETCHERS, StatementKind, classify_statement
from sqllibrarian.exceptions import wrap_driver_errors
from sqllibrarian.utils.logging import get_logger

if TYPE_CHECKING:
    from sqllibrarian.protocols import ConnectionProtocol, PreparedHandle

__all__ = ("CompiledStatement",)

logger = get_logger("statement")


class CompiledStatement:
    """One template statement bound to a connection.

    Statements without direct substitutions are prepared once, at compile
    time. Statements with ``$name`` substitutions are prepared again on every
    execution because their text changes with the data.

    Args:
        connection: Connection the statement runs on.
        sql: Template statement text.
        all_arrays: Read values from, and write single-row results to,
            element 0 of sequences in the data context.
        parameter_style: Marker style override. Defaults to the connection's.

    Raises:
        SelectModeError: If the statement has an unknown select suffix.
        DriverError: If the driver rejects the prepared text.
    """

    __slots__ = ("_handle", "all_arrays", "connection", "kind", "parsed", "source")

    def __init__(
        self,
        connection: "ConnectionProtocol",
        sql: str,
        *,
        all_arrays: bool = False,
        parameter_style: "Optional[ParameterStyle]" = None,
    ) -> None:
        self.connection = connection
        self.source = sql
        self.all_arrays = all_arrays
        self.kind, driver_sql = classify_statement(sql)
        self.parsed: ParsedSQL = parse_placeholders(driver_sql, parameter_style or connection.parameter_style)
        self._handle: "Optional[PreparedHandle]" = None
        if not self.parsed.needs_substitution:
            self._handle = self._prepare(self.parsed.sql)

    def __repr__(self) -> str:
        return f"CompiledStatement(kind={self.kind.value!r}, sql={self.sql!r})"

    @property
    def sql(self) -> str:
        """Normalized text: native bind markers, direct substitutions pending."""
        return self.parsed.sql

    @property
    def bind_names(self) -> "tuple[str, ...]":
        return self.parsed.bind_names

    @property
    def direct_names(self) -> "tuple[str, ...]":
        return self.parsed.direct_names

    @property
    def is_select(self) -> bool:
        return self.kind.is_select

    def _prepare(self, sql: str) -> "PreparedHandle":
        with wrap_driver_errors(sql):
            return self.connection.prepare(sql, len(self.parsed.bind_names))

    def bind_values(self, data: "MutableMapping[str, Any]") -> "list[Any]":
        """Resolve bind values from ``data`` in marker order."""
        context = DataContext(data, all_arrays=self.all_arrays)
        return [context.resolve(name) for name in self.parsed.bind_names]

    def execute(self, data: "MutableMapping[str, Any]") -> int:
        """Run the statement against ``data``.

        Args:
            data: Data context providing inputs and receiving SELECT output.

        Returns:
            Affected row count for mutations, 0 for SELECTs.

        Raises:
            BindResolutionError: If an input value is missing or has the wrong shape.
            ContextStructureError: If SELECT output does not fit the context.
            CardinalityError: If a SELECT returns a row count its mode forbids.
            DriverError: If the driver rejects the statement.
        """
        context = DataContext(data, all_arrays=self.all_arrays)
        if self.parsed.needs_substitution:
            sql = self.parsed.render([context.resolve_text(name) for name in self.parsed.direct_names])
            handle = self._prepare(sql)
        else:
            sql = self.parsed.sql
            handle = self._handle if self._handle is not None else self._prepare(sql)
        parameters = self.bind_values(data)

        logger.debug("SQL %s %r", sql, parameters)
        with wrap_driver_errors(sql):
            affected = self.connection.execute(handle, parameters)
            if self.kind is StatementKind.MUTATION:
                return max(affected or 0, 0)
            FETCHERS[self.kind](self.connection, handle, context, sql)
        return 0
